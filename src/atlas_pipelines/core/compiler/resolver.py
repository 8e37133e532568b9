# src/atlas_pipelines/core/compiler/resolver.py
"""
Resolução da linha de comando de componentes container.

Expande `command`, `args` e `env` de um `ContainerSpec` em tokens
concretos para um alvo, dado o mapa de argumentos da tarefa, e
classifica cada entrada referenciada como consumida por valor
(parâmetro) ou por caminho (artefato).

A sintaxe dos tokens é fornecida pelo alvo via `PlaceholderSyntax`.
Alvos que possuem acessor de valor de artefato (Vertex) consomem por
caminho as entradas `inputValue` que não estão ligadas a argumentos do
tipo parâmetro; alvos sem esse acessor (Argo) consomem sempre por valor.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Collection, Dict, List, Mapping, Optional, Tuple

from atlas_pipelines.core.exceptions import (
    DanglingReference,
    UnknownPlaceholderKind,
    UnsupportedRuntimeCondition,
)
from atlas_pipelines.core.spec.model import (
    Argument,
    ComponentSpec,
    ConcatPlaceholder,
    ContainerImplementation,
    IfCondition,
    IfPlaceholder,
    InputPathPlaceholder,
    InputValuePlaceholder,
    IsPresentPlaceholder,
    OutputPathPlaceholder,
    Placeholder,
)


@dataclass(frozen=True)
class PlaceholderSyntax:
    """Gramática de tokens de um alvo (uma função por acessor)."""

    input_parameter: Callable[[str], str]
    input_artifact_path: Callable[[str], str]
    output_artifact_path: Callable[[str], str]
    input_artifact_value: Optional[Callable[[str], str]] = None


@dataclass(frozen=True)
class ResolvedCommandLine:
    """
    Resultado da resolução.

    `command`/`args` são `None` quando ausentes no componente (o alvo omite
    o campo). As coleções de consumo preservam a ordem da primeira
    referência.
    """

    command: Optional[List[str]]
    args: Optional[List[str]]
    env: Dict[str, str] = field(default_factory=dict)
    consumed_by_value: Tuple[str, ...] = ()
    consumed_by_path: Tuple[str, ...] = ()


def _is_true(value: str) -> bool:
    return value.lower() == "true"


class _Resolver:
    def __init__(
        self,
        component: ComponentSpec,
        arguments: Mapping[str, Argument],
        syntax: PlaceholderSyntax,
        parameter_inputs: Optional[Collection[str]],
    ) -> None:
        self._inputs = component.input_map()
        self._outputs = set(component.output_names())
        self._arguments = arguments
        self._syntax = syntax
        self._parameter_inputs = parameter_inputs
        # dicts como conjuntos ordenados
        self.by_value: Dict[str, None] = {}
        self.by_path: Dict[str, None] = {}

    def _check_input(self, name: str) -> None:
        if name not in self._inputs:
            raise DanglingReference(
                f'Command line references undeclared input "{name}"',
                details={"input": name},
            )

    def _evaluate(self, cond: IfCondition) -> bool:
        if isinstance(cond, bool):
            return cond
        if isinstance(cond, str):
            return _is_true(cond)
        if isinstance(cond, IsPresentPlaceholder):
            return cond.input_name in self._arguments
        if isinstance(cond, InputValuePlaceholder):
            if cond.input_name not in self._arguments:
                return False
            argument = self._arguments[cond.input_name]
            if isinstance(argument, str):
                return _is_true(argument)
            raise UnsupportedRuntimeCondition(
                "Using runtime conditions in component command line placeholders is not supported yet.",
                details={"input": cond.input_name},
                hint="Bind the input to a constant value or use isPresent.",
            )
        raise UnknownPlaceholderKind(
            f"Unexpected condition kind: {cond!r}",
            details={"kind": type(cond).__name__},
        )

    def expand(self, item: Placeholder) -> List[str]:
        if isinstance(item, str):
            return [item]

        if isinstance(item, InputValuePlaceholder):
            name = item.input_name
            self._check_input(name)
            artifact_value = self._syntax.input_artifact_value
            if (
                artifact_value is not None
                and self._parameter_inputs is not None
                and name not in self._parameter_inputs
            ):
                self.by_path[name] = None
                return [artifact_value(name)]
            self.by_value[name] = None
            return [self._syntax.input_parameter(name)]

        if isinstance(item, InputPathPlaceholder):
            self._check_input(item.input_name)
            self.by_path[item.input_name] = None
            return [self._syntax.input_artifact_path(item.input_name)]

        if isinstance(item, OutputPathPlaceholder):
            if item.output_name not in self._outputs:
                raise DanglingReference(
                    f'Command line references undeclared output "{item.output_name}"',
                    details={"output": item.output_name},
                )
            return [self._syntax.output_artifact_path(item.output_name)]

        if isinstance(item, ConcatPlaceholder):
            return ["".join(self.expand_all(item.items))]

        if isinstance(item, IfPlaceholder):
            branch = item.then if self._evaluate(item.cond) else item.else_
            if branch is None:
                return []
            return self.expand_all(branch)

        raise UnknownPlaceholderKind(
            f"Unknown kind of command-line argument: {item!r}",
            details={"kind": type(item).__name__},
        )

    def expand_all(self, items) -> List[str]:
        tokens: List[str] = []
        for item in items:
            tokens.extend(self.expand(item))
        return tokens


def resolve_command_line(
    component: ComponentSpec,
    arguments: Mapping[str, Argument],
    syntax: PlaceholderSyntax,
    *,
    parameter_inputs: Optional[Collection[str]] = None,
) -> ResolvedCommandLine:
    """
    Resolve command/args/env de um componente container.

    Args:
        component (ComponentSpec): Componente com implementação container.
        arguments (Mapping[str, Argument]): Argumentos ligados na tarefa
            (sem aplicação de defaults; `isPresent` olha este mapa).
        syntax (PlaceholderSyntax): Gramática de tokens do alvo.
        parameter_inputs (Optional[Collection[str]]): Entradas ligadas a
            argumentos do tipo parâmetro. `None` significa todas.

    Returns:
        ResolvedCommandLine: Tokens resolvidos e classificação das entradas.

    Raises:
        UnknownPlaceholderKind: Variante de placeholder/condição desconhecida.
        UnsupportedRuntimeCondition: Condição dependente de valor em execução.
        DanglingReference: Placeholder referencia entrada/saída não declarada.
    """
    implementation = component.implementation
    if not isinstance(implementation, ContainerImplementation):
        raise TypeError("resolve_command_line only supports container components")

    container = implementation.container
    resolver = _Resolver(component, arguments, syntax, parameter_inputs)

    command = None if container.command is None else resolver.expand_all(container.command)
    args = None if container.args is None else resolver.expand_all(container.args)
    env = {name: "".join(resolver.expand(value)) for name, value in container.env.items()}

    return ResolvedCommandLine(
        command=command,
        args=args,
        env=env,
        consumed_by_value=tuple(resolver.by_value),
        consumed_by_path=tuple(resolver.by_path),
    )
