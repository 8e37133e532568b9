# src/atlas_pipelines/targets/vertex/compiler.py
"""
Emissor de Vertex AI `PipelineJob` (PipelineSpec schema 2.0.0).

Regras de I/O:
    - saída de tarefa → artefato de saída
    - `inputValue` ligado a parâmetro → parâmetro de entrada
    - `inputValue` ligado a saída de tarefa → artefato de entrada lido via
      `{{$.inputs.artifacts['x'].value}}` (sem conversor)
    - `inputPath` → artefato de entrada

Parâmetro consumido como arquivo (literal, default ou entrada do
pipeline, já que toda entrada da raiz é parâmetro): uma tarefa
`make-artifact` é inserida e deduplicada no DAG raiz.

Limites explícitos:
    - Apenas um nível de grafo: tarefas com implementação em grafo
      levantam `UnsupportedNestedGraph`
    - Um componente container na raiz é envolvido em um DAG de uma tarefa
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Dict, List, Mapping, Optional, Set, Tuple

from atlas_pipelines.core.compiler.arguments import argument_for_input, parameter_like_inputs
from atlas_pipelines.core.compiler.context import CompilationContext, new_compilation_context
from atlas_pipelines.core.compiler.naming import NameAllocator, cloud_name_policy
from atlas_pipelines.core.compiler.planner import plan_task_order
from atlas_pipelines.core.compiler.resolver import PlaceholderSyntax, resolve_command_line
from atlas_pipelines.core.exceptions import (
    CompilationError,
    InvalidComponentSpec,
    UnsupportedNestedGraph,
)
from atlas_pipelines.core.spec.model import (
    Argument,
    ComponentReference,
    ComponentSpec,
    ContainerImplementation,
    GraphImplementation,
    GraphInputArgument,
    GraphSpec,
    TaskOutputArgument,
    TaskSpec,
    TypeSpec,
)

TARGET = "vertex"

VERTEX_SYNTAX = PlaceholderSyntax(
    input_parameter=lambda name: "{{$.inputs.parameters['%s']}}" % name,
    input_artifact_path=lambda name: "{{$.inputs.artifacts['%s'].path}}" % name,
    output_artifact_path=lambda name: "{{$.outputs.artifacts['%s'].path}}" % name,
    input_artifact_value=lambda name: "{{$.inputs.artifacts['%s'].value}}" % name,
)

MAKE_ARTIFACT_REGISTRY_KEY = "make-artifact"
MAKE_ARTIFACT_INPUT_NAME = "parameter"
MAKE_ARTIFACT_OUTPUT_NAME = "artifact"

STRING = "STRING"
INT = "INT"
DOUBLE = "DOUBLE"

ARTIFACT_SCHEMA_TITLE = "system.Artifact"


# ---------------------------------------------------------------------------
# Tipos
# ---------------------------------------------------------------------------

def primitive_type(type_spec: Optional[TypeSpec]) -> str:
    """Mapeamento best-effort TypeSpec → PrimitiveType."""
    if isinstance(type_spec, str):
        lowered = type_spec.lower()
        if lowered == "integer":
            return INT
        if lowered in ("float", "double"):
            return DOUBLE
    return STRING


def _parameter_spec(type_spec: Optional[TypeSpec]) -> Dict[str, str]:
    return {"type": primitive_type(type_spec)}


def _artifact_spec(type_spec: Optional[TypeSpec]) -> Dict[str, Any]:
    # TODO: mapear tipos de artefato além de system.Artifact (ex.: system.Dataset, system.Model)
    return {"artifactType": {"schemaTitle": ARTIFACT_SCHEMA_TITLE}}


def mlmd_value(value: str, primitive: str) -> Dict[str, Any]:
    """
    Converte um literal em valor MLMD do tipo declarado.

    Raises:
        ValueError: se o literal não puder ser convertido para INT/DOUBLE.
    """
    if primitive == STRING:
        return {"stringValue": value}
    if primitive == INT:
        return {"intValue": int(value)}
    if primitive == DOUBLE:
        return {"doubleValue": float(value)}
    raise ValueError(f"Unknown primitive type {primitive}")


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------

class _PipelineSpecBuilder:
    def __init__(self, ctx: CompilationContext) -> None:
        self.ctx = ctx
        self.cfg = ctx.target_config()
        self.policy = cloud_name_policy(self.cfg["max_name_length"])
        self.executors: Dict[str, Dict[str, Any]] = {}
        self.executor_names = NameAllocator(self.policy)
        self.components: Dict[str, Dict[str, Any]] = {}
        self.component_names = NameAllocator(self.policy)
        self.registry: Dict[str, str] = {}

        self.tasks: Dict[str, Dict[str, Any]] = {}
        self.task_names = NameAllocator(self.policy)
        self.task_ids: Dict[str, str] = {}
        self.consumed_parameters: Dict[str, None] = {}
        self.consumed_artifacts: Dict[str, None] = {}

    def _caching(self) -> Dict[str, bool]:
        return {"enableCache": bool(self.cfg["enable_cache"])}

    def add_executor(self, record: Dict[str, Any], prefix: str) -> str:
        name = self.executor_names.allocate(prefix, record)
        if name not in self.executors:
            self.executors[name] = record
        return name

    def add_component(self, record: Dict[str, Any], prefix: str, task_path: str) -> str:
        name = self.component_names.allocate(prefix, record)
        if name not in self.components:
            self.components[name] = record
            self.ctx.log(task_id=task_path, level="DEBUG", message="component allocated", component=name)
        return name

    def make_artifact_component(self, task_path: str) -> str:
        name = self.registry.get(MAKE_ARTIFACT_REGISTRY_KEY)
        if name is None:
            executor = {
                "container": {
                    "image": self.cfg["converter_image"],
                    "command": [
                        "sh",
                        "-ec",
                        'mkdir -p "$(dirname "$1")"; printf "%s" "$0" > "$1"',
                        VERTEX_SYNTAX.input_parameter(MAKE_ARTIFACT_INPUT_NAME),
                        VERTEX_SYNTAX.output_artifact_path(MAKE_ARTIFACT_OUTPUT_NAME),
                    ],
                },
            }
            executor_label = self.add_executor(executor, MAKE_ARTIFACT_REGISTRY_KEY)
            component = {
                "inputDefinitions": {
                    "parameters": {MAKE_ARTIFACT_INPUT_NAME: {"type": STRING}},
                },
                "outputDefinitions": {
                    "artifacts": {MAKE_ARTIFACT_OUTPUT_NAME: _artifact_spec(None)},
                },
                "executorLabel": executor_label,
            }
            name = self.add_component(component, MAKE_ARTIFACT_REGISTRY_KEY, task_path)
            self.registry[MAKE_ARTIFACT_REGISTRY_KEY] = name
        return name

    def make_artifact(self, parameter: Dict[str, Any], prefix: str, task_path: str) -> Dict[str, Any]:
        component = self.make_artifact_component(task_path)
        record = {
            "taskInfo": {"name": MAKE_ARTIFACT_REGISTRY_KEY},
            "componentRef": {"name": component},
            "inputs": {"parameters": {MAKE_ARTIFACT_INPUT_NAME: parameter}},
            "cachingOptions": self._caching(),
        }
        name = self.task_names.allocate(prefix, record)
        if name not in self.tasks:
            self.tasks[name] = record
            self.ctx.log(task_id=task_path, level="INFO", message="make-artifact task inserted", converter=name)
        return {
            "taskOutputArtifact": {
                "producerTask": name,
                "outputArtifactKey": MAKE_ARTIFACT_OUTPUT_NAME,
            }
        }

    # -----------------------------
    # Argumentos
    # -----------------------------
    def parameter_argument(self, argument: Argument, type_spec: Optional[TypeSpec], task_path: str) -> Dict[str, Any]:
        if isinstance(argument, str):
            primitive = primitive_type(type_spec)
            try:
                value = mlmd_value(argument, primitive)
            except ValueError:
                self.ctx.add_warning(
                    task_id=task_path,
                    message=f'Value "{argument}" is not a valid {primitive}; passing it as a string',
                )
                value = {"stringValue": argument}
            return {"runtimeValue": {"constantValue": value}}
        if isinstance(argument, GraphInputArgument):
            self.consumed_parameters[argument.input_name] = None
            return {"componentInputParameter": argument.input_name}
        if isinstance(argument, TaskOutputArgument):
            return {
                "taskOutputParameter": {
                    "producerTask": self.task_ids[argument.task_id],
                    "outputParameterKey": argument.output_name,
                }
            }
        raise InvalidComponentSpec(f"Unknown kind of task argument: {argument!r}")

    def artifact_argument(
        self,
        argument: Argument,
        graph_parameter_inputs: Set[str],
        task_path: str,
    ) -> Dict[str, Any]:
        if isinstance(argument, str):
            constant = {"runtimeValue": {"constantValue": {"stringValue": argument}}}
            return self.make_artifact(constant, "make-artifact", task_path)
        if isinstance(argument, GraphInputArgument):
            name = argument.input_name
            if name in graph_parameter_inputs:
                # uma tarefa por entrada do pipeline
                self.consumed_parameters[name] = None
                return self.make_artifact(
                    {"componentInputParameter": name},
                    f"make-artifact-for-{name}",
                    task_path,
                )
            self.consumed_artifacts[name] = None
            return {"componentInputArtifact": name}
        if isinstance(argument, TaskOutputArgument):
            return {
                "taskOutputArtifact": {
                    "producerTask": self.task_ids[argument.task_id],
                    "outputArtifactKey": argument.output_name,
                }
            }
        raise InvalidComponentSpec(f"Unknown kind of task argument: {argument!r}")

    # -----------------------------
    # Tarefas
    # -----------------------------
    def compile_task(self, task_id: str, task: TaskSpec, graph_parameter_inputs: Set[str]) -> None:
        component = task.component_ref.spec
        implementation = component.implementation
        if isinstance(implementation, GraphImplementation):
            raise UnsupportedNestedGraph(
                "Nested graph components are not supported by Vertex AI Pipelines",
                details={"component": component.name},
                hint="Compile the pipeline with the Argo target or flatten the nested graph.",
            )
        if not isinstance(implementation, ContainerImplementation):
            raise InvalidComponentSpec(
                f"Unsupported component implementation kind: {type(implementation).__name__}"
            )

        parameter_inputs = parameter_like_inputs(component, task.arguments, graph_parameter_inputs)
        resolved = resolve_command_line(
            component,
            task.arguments,
            VERTEX_SYNTAX,
            parameter_inputs=parameter_inputs,
        )

        container: Dict[str, Any] = {"image": implementation.container.image}
        if resolved.command is not None:
            container["command"] = resolved.command
        if resolved.args is not None:
            container["args"] = resolved.args
        if resolved.env:
            container["env"] = [{"name": k, "value": v} for k, v in resolved.env.items()]
        executor_label = self.add_executor({"container": container}, component.name or "executor")

        inputs = component.input_map()
        component_record = {
            "inputDefinitions": {
                "parameters": {n: _parameter_spec(inputs[n].type) for n in resolved.consumed_by_value},
                "artifacts": {n: _artifact_spec(inputs[n].type) for n in resolved.consumed_by_path},
            },
            "outputDefinitions": {
                "artifacts": {o.name: _artifact_spec(o.type) for o in component.outputs},
            },
            "executorLabel": executor_label,
        }
        component_name = self.add_component(component_record, component.name or "component", task_id)

        parameters = {}
        for input_name in resolved.consumed_by_value:
            argument = argument_for_input(inputs[input_name], task.arguments, ctx=self.ctx, task_path=task_id)
            parameters[input_name] = self.parameter_argument(argument, inputs[input_name].type, task_id)

        artifacts = {}
        for input_name in resolved.consumed_by_path:
            argument = argument_for_input(inputs[input_name], task.arguments, ctx=self.ctx, task_path=task_id)
            artifacts[input_name] = self.artifact_argument(argument, graph_parameter_inputs, task_id)

        producers = set()
        for spec in list(parameters.values()) + list(artifacts.values()):
            for key in ("taskOutputParameter", "taskOutputArtifact"):
                if key in spec:
                    producers.add(spec[key]["producerTask"])

        record: Dict[str, Any] = {
            "taskInfo": {"name": task_id},
            "componentRef": {"name": component_name},
            "inputs": {"parameters": parameters, "artifacts": artifacts},
        }
        if producers:
            record["dependentTasks"] = sorted(producers)
        record["cachingOptions"] = self._caching()

        self.tasks[self.task_ids[task_id]] = record
        self.ctx.log(task_id=task_id, level="DEBUG", message="task compiled", component=component_name)

    def root_component(self, component: ComponentSpec) -> Dict[str, Any]:
        graph = component.implementation.graph
        # toda entrada da raiz é parâmetro
        graph_parameter_inputs = {i.name for i in component.inputs}

        order = plan_task_order(graph, graph_inputs=graph_parameter_inputs)
        for task_id in order:
            self.task_ids[task_id] = self.task_names.reserve(task_id)

        for task_id in order:
            try:
                self.compile_task(task_id, graph.tasks[task_id], graph_parameter_inputs)
            except CompilationError as e:
                raise e.within_task(task_id) from e

        inputs = component.input_map()
        outputs = {o.name: o for o in component.outputs}
        return {
            "inputDefinitions": {
                "parameters": {n: _parameter_spec(inputs[n].type) for n in self.consumed_parameters},
                "artifacts": {n: _artifact_spec(inputs[n].type) for n in self.consumed_artifacts},
            },
            "outputDefinitions": {
                "artifacts": {
                    name: _artifact_spec(outputs[name].type if name in outputs else None)
                    for name in graph.output_values
                },
            },
            "dag": {
                "tasks": self.tasks,
                "outputs": {
                    "artifacts": {
                        name: {
                            "artifactSelectors": [
                                {
                                    "producerSubtask": self.task_ids[arg.task_id],
                                    "outputArtifactKey": arg.output_name,
                                }
                            ]
                        }
                        for name, arg in graph.output_values.items()
                    },
                },
            },
        }


def _as_graph_component(component: ComponentSpec) -> ComponentSpec:
    """Envolve um componente container em um grafo de uma única tarefa."""
    if isinstance(component.implementation, GraphImplementation):
        return component
    task_id = component.name or "component"
    task = TaskSpec(
        component_ref=ComponentReference(name=component.name, spec=component),
        arguments={i.name: GraphInputArgument(i.name) for i in component.inputs},
    )
    graph = GraphSpec(
        tasks={task_id: task},
        output_values={o.name: TaskOutputArgument(task_id, o.name) for o in component.outputs},
    )
    return replace(component, implementation=GraphImplementation(graph))


def pipeline_info_name(pipeline_context_name: str, max_length: int = 128) -> str:
    return cloud_name_policy(max_length).sanitize(pipeline_context_name)


def _runtime_parameters(
    ctx: CompilationContext,
    component: ComponentSpec,
    root: Dict[str, Any],
    pipeline_arguments: Mapping[str, Any],
) -> Dict[str, Dict[str, Any]]:
    declared = component.input_map()
    for name in pipeline_arguments:
        if name not in declared:
            ctx.add_warning(task_id="", message=f'Pipeline argument "{name}" does not match any pipeline input')

    values: Dict[str, Any] = {i.name: i.default for i in component.inputs if i.default is not None}
    values.update({k: str(v) for k, v in pipeline_arguments.items()})

    result: Dict[str, Dict[str, Any]] = {}
    for name, spec in root["inputDefinitions"]["parameters"].items():
        value = argument_for_input(declared[name], values, ctx=ctx, task_path="")
        try:
            result[name] = mlmd_value(value, spec["type"])
        except ValueError:
            ctx.add_warning(
                task_id="",
                message=f'Pipeline argument "{name}"="{value}" is not a valid {spec["type"]}; passing it as a string',
            )
            result[name] = {"stringValue": value}
    return result


def build_vertex_pipeline_job(
    component: ComponentSpec,
    pipeline_arguments: Optional[Mapping[str, Any]] = None,
    *,
    gcs_output_directory: str,
    pipeline_context_name: str = "pipeline",
    config: Optional[Dict[str, Any]] = None,
    ctx: Optional[CompilationContext] = None,
) -> Dict[str, Any]:
    """
    Compila um componente em um Vertex AI `PipelineJob`.

    O `pipeline_context_name` compõe `pipelineInfo.name` e afeta o cache
    de tarefas do serviço.

    Raises:
        UnsupportedNestedGraph: tarefa com implementação em grafo.
        CompilationError: qualquer outra falha de compilação.
    """
    if ctx is None:
        ctx = new_compilation_context(target=TARGET, config=config)
    builder = _PipelineSpecBuilder(ctx)

    graph_component = _as_graph_component(component)
    root = builder.root_component(graph_component)

    pipeline_spec = {
        "pipelineInfo": {"name": pipeline_info_name(pipeline_context_name, builder.cfg["max_name_length"])},
        "sdkVersion": builder.cfg["sdk_version"],
        "schemaVersion": builder.cfg["schema_version"],
        "deploymentSpec": {"executors": builder.executors},
        "components": builder.components,
        "root": root,
    }

    job = {
        "displayName": component.name or "Pipeline",
        "pipelineSpec": pipeline_spec,
        "runtimeConfig": {
            "parameters": _runtime_parameters(ctx, component, root, pipeline_arguments or {}),
            "gcsOutputDirectory": gcs_output_directory,
        },
    }
    ctx.log(
        task_id="",
        level="INFO",
        message="pipeline job emitted",
        executors=len(builder.executors),
        components=len(builder.components),
        tasks=len(builder.tasks),
    )
    return job
