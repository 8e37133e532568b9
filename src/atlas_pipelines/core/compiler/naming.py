# src/atlas_pipelines/core/compiler/naming.py
"""
Alocação de nomes determinística com deduplicação estrutural.

Cada escopo de nomes (templates de um workflow, tarefas de um DAG,
executores/componentes de um PipelineJob) possui seu próprio
`NameAllocator`. Um registro estruturalmente igual a outro já alocado
(ignorando o campo de nome) recebe o mesmo id; caso contrário o id é o
prefixo sanitizado, ou `prefixo-N` com o menor N >= 2 livre.

Invariantes:
    - Todo id retornado é legal segundo a `NamePolicy` do escopo
    - Ids nunca se repetem dentro de um escopo
    - A mesma sequência de chamadas produz os mesmos ids
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from atlas_pipelines.core.canonical import structural_key

_INVALID_CHARS = re.compile(r"[^a-z0-9-]+")
_DASH_RUNS = re.compile(r"-{2,}")
_INVALID_IO_CHARS = re.compile(r"[^-a-zA-Z0-9_]")

KUBERNETES_NAME_PATTERN = re.compile(r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?$")


@dataclass(frozen=True)
class NamePolicy:
    """
    Política de nomes de um alvo.

    - minúsculas; caracteres fora de `[a-z0-9-]` viram `-`
    - sequências de `-` colapsam; `-` final é removido
    - nomes vazios ou iniciados por caractere não alfanumérico ganham prefixo `id`
    - comprimento máximo `max_length`, truncando antes do sufixo numérico
    """

    max_length: int
    delimiter: str = "-"

    def sanitize(self, name: str) -> str:
        s = _INVALID_CHARS.sub("-", name.lower())
        s = _DASH_RUNS.sub("-", s)
        if not s or not s[0].isalnum():
            s = "id" + s
        s = s[: self.max_length].rstrip("-")
        return s or "id"

    def with_suffix(self, base: str, index: int) -> str:
        suffix = f"{self.delimiter}{index}"
        head = base[: self.max_length - len(suffix)].rstrip("-")
        return head + suffix


def kubernetes_name_policy(max_length: int = 63) -> NamePolicy:
    return NamePolicy(max_length=max_length)


def cloud_name_policy(max_length: int = 128) -> NamePolicy:
    return NamePolicy(max_length=max_length)


def sanitize_io_name(name: str) -> str:
    """Nome de parâmetro/artefato Argo: caracteres fora de `[-a-zA-Z0-9_]` viram `-`."""
    return _INVALID_IO_CHARS.sub("-", name)


class NameAllocator:
    """Alocador de ids de um único escopo."""

    def __init__(self, policy: NamePolicy, *, name_field: Optional[str] = "name") -> None:
        self._policy = policy
        self._name_field = name_field
        self._used: Dict[str, None] = {}
        self._by_key: Dict[str, str] = {}

    def __contains__(self, name: str) -> bool:
        return name in self._used

    def names(self) -> List[str]:
        return list(self._used)

    def _unique(self, prefix: str) -> str:
        base = self._policy.sanitize(prefix)
        name = base
        index = 1
        while name in self._used:
            index += 1
            name = self._policy.with_suffix(base, index)
        self._used[name] = None
        return name

    def reserve(self, prefix: str) -> str:
        """Aloca um id único sem deduplicação (tarefas do usuário)."""
        return self._unique(prefix)

    def allocate(self, prefix: str, record: Dict[str, Any]) -> str:
        """Aloca (ou reutiliza) o id de um registro gerado."""
        key = structural_key(record, name_field=self._name_field)
        existing = self._by_key.get(key)
        if existing is not None:
            return existing
        name = self._unique(prefix)
        self._by_key[key] = name
        return name
