# src/atlas_pipelines/core/compiler/context.py
"""
Contexto de compilação por invocação.

Este módulo define o `CompilationContext`, a estrutura canônica que
acompanha uma única chamada de compilação (Argo ou Vertex) do início à
emissão do documento.

O CompilationContext atua como o único meio permitido de:
    - expor a configuração efetiva aos emissores
    - registrar eventos de log estruturados
    - coletar warnings não fatais associados a tarefas

Princípios fundamentais:
    - Isolamento por invocação (cada compilação possui seu próprio contexto)
    - Ausência de estado global compartilhado
    - Estrutura simples e testável

Invariantes:
    - Logs sempre incluem `compilation_id` e `task_id`
    - Warnings são agrupados pelo caminho da tarefa (`a/b`)
    - A configuração é resolvida uma única vez e não muda durante a chamada

Limites explícitos:
    - Não compila tarefas
    - Não persiste eventos automaticamente
    - Não integra com frameworks de logging
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from atlas_pipelines.core.canonical import compute_config_hash
from atlas_pipelines.core.config import load_config

# task_id usado para eventos que não pertencem a nenhuma tarefa
ROOT_TASK_ID = "<root>"


@dataclass
class CompilationContext:
    """
    Contexto de uma compilação.

    Consolida:
        - identidade da compilação (compilation_id, created_at, target)
        - configuração efetiva e seu hash canônico
        - eventos de log estruturados
        - warnings associados a tarefas

    Decisões arquiteturais:
        - Emissores interagem com logging apenas via contexto
        - Warnings nunca interrompem a compilação
    """

    compilation_id: str
    created_at: datetime
    target: str
    config: Dict[str, Any]
    meta: Dict[str, Any] = field(default_factory=dict)

    events: List[Dict[str, Any]] = field(default_factory=list, init=False)
    warnings: Dict[str, List[str]] = field(default_factory=dict, init=False)

    @property
    def config_hash(self) -> str:
        return compute_config_hash(self.config)

    def target_config(self) -> Dict[str, Any]:
        """Seção da configuração correspondente ao alvo (`argo` / `vertex`)."""
        section = self.config.get(self.target)
        if not isinstance(section, dict):
            raise KeyError(self.target)
        return section

    # -----------------------------
    # Logging & warnings
    # -----------------------------
    def log(self, *, task_id: str, level: str, message: str, **extra: Any) -> None:
        event = {
            "compilation_id": self.compilation_id,
            "target": self.target,
            "task_id": task_id or ROOT_TASK_ID,
            "level": level,
            "message": message,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        event.update(extra)
        self.events.append(event)

    def add_warning(self, *, task_id: str, message: str) -> None:
        key = task_id or ROOT_TASK_ID
        if key not in self.warnings:
            self.warnings[key] = []
        self.warnings[key].append(message)
        self.log(task_id=key, level="WARNING", message=message)


def new_compilation_context(
    *,
    target: str,
    config: Optional[Dict[str, Any]] = None,
    meta: Optional[Dict[str, Any]] = None,
) -> CompilationContext:
    """
    Cria o contexto de uma nova compilação.

    `config` é tratado como override sobre os defaults embarcados
    (mesma política de `load_config`).
    """
    ctx = CompilationContext(
        compilation_id=uuid.uuid4().hex,
        created_at=datetime.now(timezone.utc),
        target=target,
        config=load_config(overrides=config),
        meta=dict(meta or {}),
    )
    ctx.log(
        task_id=ROOT_TASK_ID,
        level="INFO",
        message="compilation started",
        config_hash=ctx.config_hash,
    )
    return ctx
