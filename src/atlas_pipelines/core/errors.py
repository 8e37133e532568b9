"""
Atlas Pipelines — Canonical Error Structures (v1)

Este módulo define o padrão canônico de payload de erro do compilador.
O compilador não formata mensagens para o usuário: o chamador (editor ou
colaborador de submissão) recebe este payload e exibe `message` literalmente.

Payloads devem ser:

- explícitos
- serializáveis
- atribuídos a uma tarefa (task_path)

Nenhuma decisão implícita é permitida.
"""

from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Optional

from .exceptions import CompilationError


# ---------------------------------------------------------------------------
# Payload canônico
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CompilerErrorPayload:
    """
    Payload canônico de erro de compilação.

    Campos:
    - type: código estável do erro (não é texto livre)
    - message: mensagem completa, já prefixada pelo caminho de tarefas
    - task_path: ids das tarefas, do grafo raiz até a tarefa que falhou
    - details: dados estruturados relevantes para diagnóstico
    - hint: ação sugerida ao autor do pipeline
    """

    type: str
    message: str
    task_path: List[str]
    details: Dict[str, Any]
    hint: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Retorna representação serializável do erro."""
        return asdict(self)


# ---------------------------------------------------------------------------
# Catálogo canônico de tipos de erro (v1)
# ---------------------------------------------------------------------------

UNKNOWN_PLACEHOLDER_KIND = "UNKNOWN_PLACEHOLDER_KIND"
UNSUPPORTED_RUNTIME_CONDITION = "UNSUPPORTED_RUNTIME_CONDITION"
MISSING_REQUIRED_ARGUMENT = "MISSING_REQUIRED_ARGUMENT"
CONSTANT_ARTIFACT_UNSUPPORTED = "CONSTANT_ARTIFACT_UNSUPPORTED"
UNSUPPORTED_NESTED_GRAPH = "UNSUPPORTED_NESTED_GRAPH"
DANGLING_REFERENCE = "DANGLING_REFERENCE"
CYCLIC_GRAPH = "CYCLIC_GRAPH"
UNRESOLVED_COMPONENT_REFERENCE = "UNRESOLVED_COMPONENT_REFERENCE"
INVALID_COMPONENT_SPEC = "INVALID_COMPONENT_SPEC"

# Falha não tipada (bug do compilador ou entrada fora do IR)
COMPILER_INTERNAL_ERROR = "COMPILER_INTERNAL_ERROR"

_TYPE_BY_CLASS = {
    "UnknownPlaceholderKind": UNKNOWN_PLACEHOLDER_KIND,
    "UnsupportedRuntimeCondition": UNSUPPORTED_RUNTIME_CONDITION,
    "MissingRequiredArgument": MISSING_REQUIRED_ARGUMENT,
    "ConstantArtifactUnsupported": CONSTANT_ARTIFACT_UNSUPPORTED,
    "UnsupportedNestedGraph": UNSUPPORTED_NESTED_GRAPH,
    "DanglingReference": DANGLING_REFERENCE,
    "CyclicGraph": CYCLIC_GRAPH,
    "UnresolvedComponentReference": UNRESOLVED_COMPONENT_REFERENCE,
    "InvalidComponentSpec": INVALID_COMPONENT_SPEC,
}


def error_type_for(exc: BaseException) -> str:
    """Código estável para a classe da exceção (percorrendo a MRO)."""
    for cls in type(exc).__mro__:
        code = _TYPE_BY_CLASS.get(cls.__name__)
        if code is not None:
            return code
    return COMPILER_INTERNAL_ERROR


def compilation_error_payload(exc: BaseException) -> CompilerErrorPayload:
    """Converte exceções em CompilerErrorPayload (serializável, acionável).

    Regras:
    - CompilationError: já vem com message/details/hint/task_path.
    - Outras exceções: encapsular como COMPILER_INTERNAL_ERROR sem expor stack trace.
    """
    if isinstance(exc, CompilationError):
        return CompilerErrorPayload(
            type=error_type_for(exc),
            message=str(exc),
            task_path=list(exc.task_path),
            details=dict(exc.details or {}),
            hint=exc.hint,
        )

    return CompilerErrorPayload(
        type=COMPILER_INTERNAL_ERROR,
        message=str(exc) or "Unexpected compiler failure",
        task_path=[],
        details={"exception_class": exc.__class__.__name__},
        hint="Verifique se o componente foi carregado via atlas_pipelines.load_component_spec",
    )
