# src/atlas_pipelines/core/canonical.py
"""
Serialização canônica e chaves estruturais.

Este módulo implementa a forma canônica usada pelo compilador para
comparar registros gerados (templates, tarefas, executores) e para
identificar a configuração efetiva de uma compilação.

Política (v1):
    - JSON canônico: chaves ordenadas, separadores compactos, UTF-8
    - Hash: SHA-256 hexadecimal do JSON canônico
    - Tuplas são serializadas como listas

Princípios fundamentais:
    - Registros estruturalmente equivalentes produzem a mesma chave,
      independente da ordem de inserção das chaves
    - Nenhum input é mutado

Limites explícitos:
    - Não aceita objetos fora do modelo JSON (dataclasses devem ser
      convertidas antes)
"""

from __future__ import annotations

import hashlib
import json
from typing import Any, Dict, Optional


def canonical_json(obj: Any) -> str:
    """Serializa `obj` em JSON canônico (sort_keys, separadores compactos)."""
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def compute_hash(obj: Any) -> str:
    """SHA-256 hexadecimal (64 caracteres) do JSON canônico de `obj`."""
    return hashlib.sha256(canonical_json(obj).encode("utf-8")).hexdigest()


def structural_key(record: Dict[str, Any], name_field: Optional[str] = "name") -> str:
    """
    Chave estrutural de um registro gerado.

    O campo de nome (`name_field`) é apagado antes do hashing, de modo que
    dois registros que só diferem pelo nome atribuído colidam.

    Args:
        record (Dict[str, Any]): Registro emitido (template, tarefa, executor...).
        name_field (Optional[str]): Campo a ignorar; `None` usa o registro inteiro.

    Returns:
        str: Hash SHA-256 do registro sem o nome.
    """
    if not isinstance(record, dict):
        raise TypeError(f"Registro para chave estrutural deve ser dict, recebido: {type(record).__name__}")
    if name_field is not None and name_field in record:
        record = {k: v for k, v in record.items() if k != name_field}
    return compute_hash(record)


def compute_config_hash(config: Dict[str, Any]) -> str:
    """Hash canônico da configuração efetiva (rastreabilidade)."""
    if not isinstance(config, dict):
        raise TypeError(
            f"Config para hashing deve ser dict, recebido: {type(config).__name__}"
        )
    return compute_hash(config)
