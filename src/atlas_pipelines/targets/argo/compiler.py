# src/atlas_pipelines/targets/argo/compiler.py
"""
Emissor de Argo Workflows (`argoproj.io/v1alpha1`, kind `Workflow`).

Regras de I/O:
    - saída de tarefa → artefato de saída
    - `inputValue`   → parâmetro de entrada
    - `inputPath`    → artefato de entrada

Conflitos:
    - Artefato consumido como valor (saída de tarefa ou entrada de grafo
      disponível apenas como artefato): uma tarefa conversora
      artefato→parâmetro é inserida entre produtor e consumidor. O
      template do conversor é criado uma única vez por compilação e as
      tarefas conversoras são deduplicadas por escopo de DAG.
    - Parâmetro consumido como arquivo (literal ou default):
      `ConstantArtifactUnsupported`.

Entradas de grafo possuem um tipo por escopo de DAG:
    - raiz: `any` (o workflow aceita argumentos parâmetro e artefato)
    - grafo aninhado: `parameter` quando o pai passa literal/default,
      `artifact` quando o pai passa saída de tarefa, e o tipo herdado
      quando o pai repassa uma entrada do próprio grafo
"""

from __future__ import annotations

import re
from typing import Any, Dict, List, Mapping, Optional, Tuple

from atlas_pipelines.core.compiler.arguments import argument_for_input
from atlas_pipelines.core.compiler.context import CompilationContext, new_compilation_context
from atlas_pipelines.core.compiler.naming import (
    NameAllocator,
    kubernetes_name_policy,
    sanitize_io_name,
)
from atlas_pipelines.core.compiler.planner import plan_task_order
from atlas_pipelines.core.compiler.resolver import PlaceholderSyntax, resolve_command_line
from atlas_pipelines.core.exceptions import (
    CompilationError,
    ConstantArtifactUnsupported,
    InvalidComponentSpec,
)
from atlas_pipelines.core.spec.model import (
    Argument,
    ComponentSpec,
    ContainerImplementation,
    GraphImplementation,
    GraphInputArgument,
    GraphSpec,
    TaskOutputArgument,
)

TARGET = "argo"

ARGO_SYNTAX = PlaceholderSyntax(
    input_parameter=lambda name: "{{inputs.parameters.%s}}" % sanitize_io_name(name),
    input_artifact_path=lambda name: "{{inputs.artifacts.%s.path}}" % sanitize_io_name(name),
    output_artifact_path=lambda name: "{{outputs.artifacts.%s.path}}" % sanitize_io_name(name),
)

CONVERTER_REGISTRY_KEY = "artifact-to-parameter"
CONVERTER_INPUT_NAME = "artifact"
CONVERTER_OUTPUT_NAME = "parameter"

KIND_ANY = "any"
KIND_PARAMETER = "parameter"
KIND_ARTIFACT = "artifact"

_TASK_REFERENCE = re.compile(r"\{\{tasks\.([^.]+)\.outputs\.")
_GENERATE_NAME_INVALID = re.compile(r"[^-a-z0-9.]")


def _task_output_artifact(task_name: str, output_name: str) -> str:
    return "{{tasks.%s.outputs.artifacts.%s}}" % (task_name, sanitize_io_name(output_name))


def _graph_input_parameter(input_name: str) -> str:
    return "{{inputs.parameters.%s}}" % sanitize_io_name(input_name)


def _graph_input_artifact(input_name: str) -> str:
    return "{{inputs.artifacts.%s}}" % sanitize_io_name(input_name)


def referenced_tasks(values: List[str]) -> List[str]:
    """Ids de tarefas referenciados por `{{tasks.X.outputs...}}`, únicos e ordenados."""
    found = set()
    for value in values:
        found.update(_TASK_REFERENCE.findall(value))
    return sorted(found)


class _DagScope:
    """Estado de um template DAG em construção."""

    def __init__(
        self,
        builder: "_WorkflowBuilder",
        graph: GraphSpec,
        input_kinds: Mapping[str, str],
        path: Tuple[str, ...],
    ):
        self.graph = graph
        self.input_kinds = dict(input_kinds)
        self.path = path
        self.tasks: Dict[str, Dict[str, Any]] = {}
        self.task_names = NameAllocator(builder.policy)
        self.task_ids: Dict[str, str] = {}
        self.consumed_parameters: Dict[str, None] = {}
        self.consumed_artifacts: Dict[str, None] = {}

    def add_task(self, name: str, record: Dict[str, Any]) -> bool:
        if name in self.tasks:
            return False
        self.tasks[name] = {"name": name, **record}
        return True


class _WorkflowBuilder:
    def __init__(self, ctx: CompilationContext) -> None:
        self.ctx = ctx
        self.cfg = ctx.target_config()
        self.policy = kubernetes_name_policy(self.cfg["max_name_length"])
        self.templates: Dict[str, Dict[str, Any]] = {}
        self.template_names = NameAllocator(self.policy)
        self.registry: Dict[str, str] = {}

    # -----------------------------
    # Templates
    # -----------------------------
    def _io_path(self, root: str, name: str) -> str:
        return "/".join([root, sanitize_io_name(name), self.cfg["io_file_name"]])

    def add_template(self, record: Dict[str, Any], prefix: str, path: Tuple[str, ...]) -> str:
        name = self.template_names.allocate(prefix, record)
        if name not in self.templates:
            self.templates[name] = {"name": name, **record}
            self.ctx.log(task_id="/".join(path), level="DEBUG", message="template allocated", template=name)
        return name

    def converter_template(self, path: Tuple[str, ...]) -> str:
        name = self.registry.get(CONVERTER_REGISTRY_KEY)
        if name is None:
            record = {
                "inputs": {
                    "artifacts": [
                        {
                            "name": CONVERTER_INPUT_NAME,
                            "path": self._io_path(self.cfg["container_inputs_dir"], CONVERTER_INPUT_NAME),
                        }
                    ],
                },
                "outputs": {
                    "parameters": [
                        {
                            "name": CONVERTER_OUTPUT_NAME,
                            "valueFrom": {
                                "path": self._io_path(self.cfg["container_outputs_dir"], CONVERTER_OUTPUT_NAME),
                            },
                        }
                    ],
                },
                "container": {
                    "name": "main",
                    "image": self.cfg["converter_image"],
                    "command": [
                        "sh",
                        "-ec",
                        'mkdir -p "$(dirname "$1")"; cp "$0" "$1"',
                        "{{inputs.artifacts.%s.path}}" % CONVERTER_INPUT_NAME,
                        "{{outputs.parameters.%s.path}}" % CONVERTER_OUTPUT_NAME,
                    ],
                },
            }
            name = self.add_template(record, "convert-artifact-to-parameter", path)
            self.registry[CONVERTER_REGISTRY_KEY] = name
        return name

    def container_template(
        self,
        component: ComponentSpec,
        arguments: Mapping[str, Argument],
    ) -> Tuple[Dict[str, Any], Tuple[str, ...], Tuple[str, ...]]:
        implementation = component.implementation
        assert isinstance(implementation, ContainerImplementation)
        resolved = resolve_command_line(component, arguments, ARGO_SYNTAX)

        container: Dict[str, Any] = {"name": "main", "image": implementation.container.image}
        if resolved.command is not None:
            container["command"] = resolved.command
        if resolved.args is not None:
            container["args"] = resolved.args
        if resolved.env:
            container["env"] = [{"name": k, "value": v} for k, v in resolved.env.items()]

        record = {
            "inputs": {
                "parameters": [{"name": sanitize_io_name(n)} for n in resolved.consumed_by_value],
                "artifacts": [
                    {"name": sanitize_io_name(n), "path": self._io_path(self.cfg["container_inputs_dir"], n)}
                    for n in resolved.consumed_by_path
                ],
            },
            "outputs": {
                "artifacts": [
                    {"name": sanitize_io_name(o.name), "path": self._io_path(self.cfg["container_outputs_dir"], o.name)}
                    for o in component.outputs
                ],
            },
            "container": container,
        }
        return record, resolved.consumed_by_value, resolved.consumed_by_path

    def dag_template(
        self,
        component: ComponentSpec,
        input_kinds: Mapping[str, str],
        path: Tuple[str, ...],
    ) -> Tuple[Dict[str, Any], Tuple[str, ...], Tuple[str, ...]]:
        implementation = component.implementation
        assert isinstance(implementation, GraphImplementation)
        graph = implementation.graph

        order = plan_task_order(graph, graph_inputs=[i.name for i in component.inputs])
        scope = _DagScope(self, graph, input_kinds, path)
        for task_id in order:
            scope.task_ids[task_id] = scope.task_names.reserve(task_id)

        for task_id in order:
            try:
                self.compile_task(scope, task_id)
            except CompilationError as e:
                raise e.within_task(task_id) from e

        outputs = [
            {
                "name": sanitize_io_name(output_name),
                "from": _task_output_artifact(scope.task_ids[arg.task_id], arg.output_name),
            }
            for output_name, arg in graph.output_values.items()
        ]

        record = {
            "inputs": {
                "parameters": [{"name": sanitize_io_name(n)} for n in scope.consumed_parameters],
                "artifacts": [{"name": sanitize_io_name(n)} for n in scope.consumed_artifacts],
            },
            "outputs": {"artifacts": outputs},
            "dag": {"tasks": list(scope.tasks.values())},
        }
        return record, tuple(scope.consumed_parameters), tuple(scope.consumed_artifacts)

    def template_for(
        self,
        component: ComponentSpec,
        arguments: Mapping[str, Argument],
        input_kinds: Mapping[str, str],
        path: Tuple[str, ...],
    ) -> Tuple[Dict[str, Any], Tuple[str, ...], Tuple[str, ...]]:
        if isinstance(component.implementation, ContainerImplementation):
            return self.container_template(component, arguments)
        if isinstance(component.implementation, GraphImplementation):
            return self.dag_template(component, input_kinds, path)
        raise InvalidComponentSpec(
            f"Unsupported component implementation kind: {type(component.implementation).__name__}"
        )

    # -----------------------------
    # Tarefas
    # -----------------------------
    def _child_input_kind(self, scope: _DagScope, argument: Optional[Argument]) -> str:
        if argument is None or isinstance(argument, str):
            return KIND_PARAMETER
        if isinstance(argument, GraphInputArgument):
            return scope.input_kinds[argument.input_name]
        if isinstance(argument, TaskOutputArgument):
            return KIND_ARTIFACT
        raise InvalidComponentSpec(f"Unknown kind of task argument: {argument!r}")

    def _convert(self, scope: _DagScope, source: str, prefix: str) -> str:
        template = self.converter_template(scope.path)
        record: Dict[str, Any] = {
            "template": template,
            "arguments": {"artifacts": [{"name": CONVERTER_INPUT_NAME, "from": source}]},
        }
        dependencies = referenced_tasks([source])
        if dependencies:
            record["dependencies"] = dependencies
        name = scope.task_names.allocate(prefix, record)
        if scope.add_task(name, record):
            self.ctx.log(
                task_id="/".join(scope.path),
                level="INFO",
                message="converter task inserted",
                converter=name,
                source=source,
            )
        return "{{tasks.%s.outputs.parameters.%s}}" % (name, CONVERTER_OUTPUT_NAME)

    def parameter_value(self, scope: _DagScope, argument: Argument) -> str:
        if isinstance(argument, str):
            return argument
        if isinstance(argument, GraphInputArgument):
            name = argument.input_name
            if scope.input_kinds[name] == KIND_ARTIFACT:
                scope.consumed_artifacts[name] = None
                return self._convert(scope, _graph_input_artifact(name), f"convert-{name}")
            scope.consumed_parameters[name] = None
            return _graph_input_parameter(name)
        if isinstance(argument, TaskOutputArgument):
            producer = scope.task_ids[argument.task_id]
            return self._convert(
                scope,
                _task_output_artifact(producer, argument.output_name),
                f"convert-{argument.task_id}-{argument.output_name}",
            )
        raise InvalidComponentSpec(f"Unknown kind of task argument: {argument!r}")

    def artifact_source(self, scope: _DagScope, argument: Argument, input_name: str) -> str:
        if isinstance(argument, TaskOutputArgument):
            return _task_output_artifact(scope.task_ids[argument.task_id], argument.output_name)
        if isinstance(argument, GraphInputArgument):
            if scope.input_kinds[argument.input_name] != KIND_PARAMETER:
                scope.consumed_artifacts[argument.input_name] = None
                return _graph_input_artifact(argument.input_name)
        elif not isinstance(argument, str):
            raise InvalidComponentSpec(f"Unknown kind of task argument: {argument!r}")
        raise ConstantArtifactUnsupported(
            f'Constant value cannot be passed to input "{input_name}" consumed as a file',
            details={"input": input_name},
            hint="Produce the value with an upstream task or pass it as a pipeline argument.",
        )


    def compile_task(self, scope: _DagScope, task_id: str) -> None:
        task = scope.graph.tasks[task_id]
        component = task.component_ref.spec
        path = scope.path + (task_id,)
        task_path = "/".join(path)

        child_kinds = {
            i.name: self._child_input_kind(scope, task.arguments.get(i.name))
            for i in component.inputs
        }
        template_record, by_value, by_path = self.template_for(component, task.arguments, child_kinds, path)
        template = self.add_template(template_record, component.name or "component", path)

        inputs = component.input_map()
        parameters: List[Dict[str, str]] = []
        for input_name in by_value:
            argument = argument_for_input(inputs[input_name], task.arguments, ctx=self.ctx, task_path=task_path)
            parameters.append(
                {"name": sanitize_io_name(input_name), "value": self.parameter_value(scope, argument)}
            )

        artifacts: List[Dict[str, str]] = []
        for input_name in by_path:
            argument = argument_for_input(inputs[input_name], task.arguments, ctx=self.ctx, task_path=task_path)
            artifacts.append(
                {"name": sanitize_io_name(input_name), "from": self.artifact_source(scope, argument, input_name)}
            )

        record: Dict[str, Any] = {
            "template": template,
            "arguments": {"parameters": parameters, "artifacts": artifacts},
        }
        # dependências vêm dos argumentos já compilados (o produtor pode ser um conversor)
        dependencies = referenced_tasks([p["value"] for p in parameters] + [a["from"] for a in artifacts])
        if dependencies:
            record["dependencies"] = dependencies

        name = scope.task_ids[task_id]
        scope.add_task(name, record)
        self.ctx.log(task_id=task_path, level="DEBUG", message="task compiled", task=name, template=template)


def _workflow_arguments(
    ctx: CompilationContext,
    component: ComponentSpec,
    pipeline_arguments: Mapping[str, Any],
    by_value: Tuple[str, ...],
    by_path: Tuple[str, ...],
) -> Dict[str, List[Dict[str, Any]]]:
    declared = component.input_map()
    for name in pipeline_arguments:
        if name not in declared:
            ctx.add_warning(task_id="", message=f'Pipeline argument "{name}" does not match any pipeline input')

    values: Dict[str, Any] = {i.name: i.default for i in component.inputs if i.default is not None}
    values.update({k: str(v) for k, v in pipeline_arguments.items()})

    def value_of(name: str) -> str:
        return argument_for_input(declared[name], values, ctx=ctx, task_path="")

    return {
        "parameters": [{"name": sanitize_io_name(n), "value": value_of(n)} for n in by_value],
        "artifacts": [{"name": sanitize_io_name(n), "raw": {"data": value_of(n)}} for n in by_path],
    }


def workflow_generate_name(component: ComponentSpec, max_length: int = 240) -> str:
    name = _GENERATE_NAME_INVALID.sub("-", (component.name or "").lower())
    return (name or "pipeline-")[:max_length]


def build_argo_workflow(
    component: ComponentSpec,
    pipeline_arguments: Optional[Mapping[str, Any]] = None,
    *,
    config: Optional[Dict[str, Any]] = None,
    ctx: Optional[CompilationContext] = None,
) -> Dict[str, Any]:
    """
    Compila um componente (grafo ou container) em um Argo `Workflow`.

    Args:
        component (ComponentSpec): Pipeline totalmente resolvido
            (todo `componentRef.spec` populado).
        pipeline_arguments (Optional[Mapping[str, Any]]): Argumentos das
            entradas do pipeline; sobrescrevem os defaults declarados.
        config (Optional[Dict[str, Any]]): Overrides de configuração
            (ignorado quando `ctx` é informado).
        ctx (Optional[CompilationContext]): Contexto de compilação; um novo
            contexto é criado quando ausente.

    Returns:
        Dict[str, Any]: Documento `Workflow` pronto para serialização.

    Raises:
        CompilationError: qualquer falha de compilação (sem saída parcial).
    """
    if ctx is None:
        ctx = new_compilation_context(target=TARGET, config=config)
    builder = _WorkflowBuilder(ctx)

    root_arguments = {i.name: GraphInputArgument(i.name) for i in component.inputs}
    root_kinds = {i.name: KIND_ANY for i in component.inputs}
    record, by_value, by_path = builder.template_for(component, root_arguments, root_kinds, ())
    entrypoint = builder.add_template(record, component.name or "pipeline", ())

    arguments = _workflow_arguments(ctx, component, pipeline_arguments or {}, by_value, by_path)

    workflow = {
        "apiVersion": "argoproj.io/v1alpha1",
        "kind": "Workflow",
        "metadata": {
            "generateName": workflow_generate_name(component, builder.cfg["max_generate_name_length"]),
            "annotations": dict(builder.cfg["workflow_annotations"]),
        },
        "spec": {
            "entrypoint": entrypoint,
            "templates": list(builder.templates.values()),
            "arguments": arguments,
        },
    }
    ctx.log(
        task_id="",
        level="INFO",
        message="workflow emitted",
        entrypoint=entrypoint,
        templates=len(builder.templates),
    )
    return workflow
