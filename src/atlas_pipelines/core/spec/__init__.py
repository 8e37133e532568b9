"""Atlas Pipelines — IR de componentes (core).

Componentes canônicos do modelo intermediário:
 - dataclasses imutáveis (ComponentSpec, TaskSpec, placeholders, argumentos)
 - parsing do formato serializado (YAML/JSON/dict)
"""

from .model import (  # noqa: F401
    Argument,
    ComponentReference,
    ComponentSpec,
    ConcatPlaceholder,
    ContainerImplementation,
    ContainerSpec,
    GraphImplementation,
    GraphInputArgument,
    GraphSpec,
    IfCondition,
    IfPlaceholder,
    InputPathPlaceholder,
    InputSpec,
    InputValuePlaceholder,
    IsPresentPlaceholder,
    OutputPathPlaceholder,
    OutputSpec,
    Placeholder,
    TaskOutputArgument,
    TaskSpec,
    TypeSpec,
    is_container_component,
    is_graph_component,
)
from .loader import (  # noqa: F401
    component_spec_from_dict,
    load_component_spec,
    parse_argument,
    parse_placeholder,
)
