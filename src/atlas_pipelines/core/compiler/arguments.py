# src/atlas_pipelines/core/compiler/arguments.py
"""
Política de argumentos compartilhada pelos emissores.

- `argument_for_input`: aplica a política de argumento ausente
  (default → opcional com warning → erro fatal)
- `parameter_like_inputs`: entradas cujo argumento pode ser tratado
  como parâmetro (literal, default ou entrada de grafo do tipo parâmetro)
"""

from __future__ import annotations

from typing import Collection, Mapping, Set

from atlas_pipelines.core.exceptions import MissingRequiredArgument
from atlas_pipelines.core.spec.model import (
    Argument,
    ComponentSpec,
    GraphInputArgument,
    InputSpec,
)

from .context import CompilationContext


def argument_for_input(
    input_spec: InputSpec,
    arguments: Mapping[str, Argument],
    *,
    ctx: CompilationContext,
    task_path: str,
) -> Argument:
    """
    Retorna o argumento efetivo de uma entrada.

    Raises:
        MissingRequiredArgument: entrada obrigatória sem argumento e sem default.
    """
    if input_spec.name in arguments:
        return arguments[input_spec.name]

    if input_spec.default is not None:
        return input_spec.default

    if input_spec.optional:
        ctx.add_warning(
            task_id=task_path,
            message=(
                f'Input "{input_spec.name}" is optional, but command-line '
                "still uses it when it's not present."
            ),
        )
        return ""

    raise MissingRequiredArgument(
        f'Argument was not provided for required input "{input_spec.name}"',
        details={"input": input_spec.name},
        hint="Pass an argument or declare a default value for the input.",
    )


def parameter_like_inputs(
    component: ComponentSpec,
    arguments: Mapping[str, Argument],
    graph_parameter_inputs: Collection[str],
) -> Set[str]:
    """
    Entradas do componente cujo argumento é um parâmetro.

    Argumentos ausentes caem no default (literal), portanto contam como
    parâmetro. Saídas de tarefas são sempre artefatos.
    """
    result: Set[str] = set()
    for input_spec in component.inputs:
        argument = arguments.get(input_spec.name)
        if argument is None or isinstance(argument, str):
            result.add(input_spec.name)
        elif isinstance(argument, GraphInputArgument):
            if argument.input_name in graph_parameter_inputs:
                result.add(input_spec.name)
    return result
