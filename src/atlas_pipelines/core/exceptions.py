"""
Atlas Pipelines — Canonical Exceptions (v1)

Este módulo define as exceções tipadas de compilação do Atlas Pipelines.

Objetivo:
- Permitir que resolver, classificador e emissores levantem falhas semânticas tipadas
- Facilitar o mapeamento determinístico para CompilerErrorPayload
- Atribuir toda falha à tarefa responsável (caminho `taskA/taskB`)

Regras:
- Toda falha de compilação é fatal para a chamada corrente (sem saída parcial).
- Exceções carregam apenas dados estruturados (serializáveis) em `details`.
- A mensagem é repassada literalmente ao chamador (UI ou submissão).
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True, eq=False)
class CompilationError(Exception):
    """Base class para exceções de compilação.

    Importante:
    - `task_path` cresce de dentro para fora: cada nível de grafo que
      propaga a exceção prefixa o id da sua tarefa
    - `str(exc)` produz `taskA/taskB: <mensagem>`
    """

    message: str
    details: Dict[str, Any] = field(default_factory=dict)
    hint: Optional[str] = None
    task_path: Tuple[str, ...] = ()

    def __str__(self) -> str:
        if not self.task_path:
            return self.message
        return "/".join(self.task_path) + ": " + self.message

    def within_task(self, task_id: str) -> "CompilationError":
        """Retorna uma NOVA exceção com `task_id` prefixado ao caminho."""
        return replace(self, task_path=(task_id,) + tuple(self.task_path))


# ---------------------------------------------------------------------------
# Placeholders / linha de comando
# ---------------------------------------------------------------------------

@dataclass(frozen=True, eq=False)
class UnknownPlaceholderKind(CompilationError):
    """Variante de placeholder, condição ou argumento desconhecida (IR malformado)."""


@dataclass(frozen=True, eq=False)
class UnsupportedRuntimeCondition(CompilationError):
    """Condição `if` depende de valor conhecido apenas em tempo de execução."""


# ---------------------------------------------------------------------------
# Argumentos
# ---------------------------------------------------------------------------

@dataclass(frozen=True, eq=False)
class MissingRequiredArgument(CompilationError):
    """Entrada obrigatória sem argumento e sem default."""


@dataclass(frozen=True, eq=False)
class ConstantArtifactUnsupported(CompilationError):
    """Valor literal ligado a entrada consumida como artefato (alvo não suporta)."""


# ---------------------------------------------------------------------------
# Estrutura do grafo
# ---------------------------------------------------------------------------

@dataclass(frozen=True, eq=False)
class UnsupportedNestedGraph(CompilationError):
    """Tarefa com implementação em grafo num alvo que só aceita containers."""


@dataclass(frozen=True, eq=False)
class DanglingReference(CompilationError):
    """Referência a tarefa, saída ou entrada de grafo inexistente."""


@dataclass(frozen=True, eq=False)
class CyclicGraph(CompilationError):
    """O grafo de dependências entre tarefas contém um ciclo."""


@dataclass(frozen=True, eq=False)
class UnresolvedComponentReference(CompilationError):
    """Tarefa cujo `componentRef.spec` não foi carregado pelo colaborador externo."""


@dataclass(frozen=True, eq=False)
class InvalidComponentSpec(CompilationError):
    """Documento de componente estruturalmente inválido (loader)."""
