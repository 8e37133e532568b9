"""Atlas Pipelines — estágios compartilhados do compilador.

 - contexto por invocação (config, log estruturado, warnings)
 - planejamento topológico das tarefas
 - resolução de linha de comando
 - política de argumentos
 - alocação de nomes com deduplicação
"""

from .arguments import argument_for_input, parameter_like_inputs  # noqa: F401
from .context import ROOT_TASK_ID, CompilationContext, new_compilation_context  # noqa: F401
from .naming import (  # noqa: F401
    KUBERNETES_NAME_PATTERN,
    NameAllocator,
    NamePolicy,
    cloud_name_policy,
    kubernetes_name_policy,
    sanitize_io_name,
)
from .planner import plan_task_order, task_dependencies  # noqa: F401
from .resolver import PlaceholderSyntax, ResolvedCommandLine, resolve_command_line  # noqa: F401
