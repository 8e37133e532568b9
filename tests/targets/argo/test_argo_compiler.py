# tests/targets/argo/test_argo_compiler.py
"""
Testes do emissor Argo Workflows.

Os testes asseguram que:
- o documento tem a forma `argoproj.io/v1alpha1` / `Workflow`
- tarefas, templates e dependências seguem a ordem topológica
- artefatos consumidos como valor recebem tarefa conversora (deduplicada)
- constantes consumidas como arquivo são rejeitadas
- grafos aninhados viram templates DAG e erros carregam o caminho da tarefa
- nomes emitidos são legais para Kubernetes
- a compilação é determinística
"""

import re

import pytest

try:
    from atlas_pipelines.core.compiler.context import new_compilation_context
    from atlas_pipelines.core.exceptions import (
        ConstantArtifactUnsupported,
        CyclicGraph,
        MissingRequiredArgument,
        UnresolvedComponentReference,
    )
    from atlas_pipelines.core.spec import component_spec_from_dict
    from atlas_pipelines.targets.argo import build_argo_workflow, referenced_tasks
except Exception as e:  # noqa: BLE001
    build_argo_workflow = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if _IMPORT_ERR is not None:
        pytest.fail(
            "Missing Argo emitter. Implement:\n"
            "- src/atlas_pipelines/targets/argo/compiler.py (build_argo_workflow)\n"
            f"Import error: {_IMPORT_ERR}"
        )


def _compile(data, arguments=None, ctx=None):
    return build_argo_workflow(component_spec_from_dict(data), arguments or {}, ctx=ctx)


def _templates(workflow):
    return {t["name"]: t for t in workflow["spec"]["templates"]}


def _dag_tasks(workflow, template_name=None):
    templates = _templates(workflow)
    name = template_name or workflow["spec"]["entrypoint"]
    return {t["name"]: t for t in templates[name]["dag"]["tasks"]}


# =====================================================
# Forma do documento
# =====================================================

def test_train_predict_by_path(train_predict_pipeline):
    """
    Verifica o cenário train → predict com consumo por caminho.

    Invariantes:
        - Templates na ordem de alocação (tarefas antes do DAG raiz)
        - `predict` recebe o artefato direto da saída de `train`
        - `train` usa o default de `epochs` e não tem `dependencies`
        - Nenhum conversor é inserido
    """
    _require_imports()
    workflow = _compile(train_predict_pipeline("path"))

    assert workflow["apiVersion"] == "argoproj.io/v1alpha1"
    assert workflow["kind"] == "Workflow"
    assert workflow["metadata"]["generateName"] == "train-and-predict"
    assert workflow["spec"]["entrypoint"] == "train-and-predict"
    assert [t["name"] for t in workflow["spec"]["templates"]] == [
        "train-model",
        "predict",
        "train-and-predict",
    ]

    tasks = _dag_tasks(workflow)
    assert list(tasks) == ["train", "predict"]

    train = tasks["train"]
    assert train["template"] == "train-model"
    assert train["arguments"]["parameters"] == [{"name": "epochs", "value": "10"}]
    assert "dependencies" not in train

    predict = tasks["predict"]
    assert predict["arguments"]["artifacts"] == [
        {"name": "model", "from": "{{tasks.train.outputs.artifacts.model}}"}
    ]
    assert predict["dependencies"] == ["train"]


def test_container_template_io(train_predict_pipeline):
    _require_imports()
    workflow = _compile(train_predict_pipeline("path"))
    templates = _templates(workflow)

    train = templates["train-model"]
    assert train["inputs"]["parameters"] == [{"name": "epochs"}]
    assert train["outputs"]["artifacts"] == [{"name": "model", "path": "/tmp/outputs/model/data"}]
    assert train["container"] == {
        "name": "main",
        "image": "python:3.9",
        "command": ["python", "train.py"],
        "args": ["--epochs", "{{inputs.parameters.epochs}}", "--model", "{{outputs.artifacts.model.path}}"],
    }

    predict = templates["predict"]
    assert predict["inputs"]["artifacts"] == [{"name": "model", "path": "/tmp/inputs/model/data"}]
    assert "{{inputs.artifacts.model.path}}" in predict["container"]["args"]


def test_train_predict_by_value_inserts_converter(train_predict_pipeline):
    """
    Verifica a inserção do conversor artefato→parâmetro.

    Invariantes:
        - O template do conversor é criado sob demanda, após o template consumidor
        - A tarefa conversora fica entre produtor e consumidor
        - O consumidor depende do conversor; o conversor depende do produtor
    """
    _require_imports()
    workflow = _compile(train_predict_pipeline("value"))

    assert [t["name"] for t in workflow["spec"]["templates"]] == [
        "train-model",
        "predict",
        "convert-artifact-to-parameter",
        "train-and-predict",
    ]

    tasks = _dag_tasks(workflow)
    assert list(tasks) == ["train", "convert-train-model", "predict"]

    converter = tasks["convert-train-model"]
    assert converter["template"] == "convert-artifact-to-parameter"
    assert converter["arguments"]["artifacts"] == [
        {"name": "artifact", "from": "{{tasks.train.outputs.artifacts.model}}"}
    ]
    assert converter["dependencies"] == ["train"]

    predict = tasks["predict"]
    assert predict["arguments"]["parameters"] == [
        {"name": "model", "value": "{{tasks.convert-train-model.outputs.parameters.parameter}}"}
    ]
    assert predict["dependencies"] == ["convert-train-model"]

    template = _templates(workflow)["convert-artifact-to-parameter"]
    assert template["outputs"]["parameters"][0]["valueFrom"] == {"path": "/tmp/outputs/parameter/data"}


def test_converter_is_shared_by_consumers(make_pipeline, train_component, predict_component):
    _require_imports()
    model = {"taskOutput": {"taskId": "train", "outputName": "model"}}
    workflow = _compile(
        make_pipeline(
            {
                "train": (train_component, {}),
                "predict-a": (predict_component("value"), {"model": model}),
                "predict-b": (predict_component("value"), {"model": model}),
            }
        )
    )

    tasks = _dag_tasks(workflow)
    assert list(tasks) == ["train", "convert-train-model", "predict-a", "predict-b"]
    assert tasks["predict-a"]["dependencies"] == ["convert-train-model"]
    assert tasks["predict-b"]["dependencies"] == ["convert-train-model"]

    names = [t["name"] for t in workflow["spec"]["templates"]]
    assert names.count("convert-artifact-to-parameter") == 1
    assert names == ["train-model", "predict", "convert-artifact-to-parameter", "pipeline"]


def test_converter_image_comes_from_config(train_predict_pipeline):
    _require_imports()
    ctx = new_compilation_context(target="argo", config={"argo": {"converter_image": "busybox:1.36"}})
    workflow = _compile(train_predict_pipeline("value"), ctx=ctx)
    template = _templates(workflow)["convert-artifact-to-parameter"]
    assert template["container"]["image"] == "busybox:1.36"


# =====================================================
# Argumentos do pipeline
# =====================================================

def test_pipeline_arguments_override_defaults(make_pipeline, echo_component, cat_component):
    """
    Verifica argumentos da raiz: parâmetros e artefatos `raw`.
    """
    _require_imports()
    data = make_pipeline(
        {
            "echo": (echo_component, {"text": {"graphInput": {"inputName": "text"}}}),
            "cat": (cat_component, {"file": {"graphInput": {"inputName": "file"}}}),
        },
        inputs=[{"name": "text", "default": "hi"}, {"name": "file"}],
    )
    workflow = _compile(data, {"file": "content"})

    assert workflow["spec"]["arguments"] == {
        "parameters": [{"name": "text", "value": "hi"}],
        "artifacts": [{"name": "file", "raw": {"data": "content"}}],
    }
    root = _templates(workflow)[workflow["spec"]["entrypoint"]]
    assert root["inputs"] == {"parameters": [{"name": "text"}], "artifacts": [{"name": "file"}]}

    tasks = _dag_tasks(workflow)
    assert tasks["echo"]["arguments"]["parameters"] == [{"name": "text", "value": "{{inputs.parameters.text}}"}]
    assert tasks["cat"]["arguments"]["artifacts"] == [{"name": "file", "from": "{{inputs.artifacts.file}}"}]


def test_missing_pipeline_argument_raises(make_pipeline, echo_component):
    _require_imports()
    data = make_pipeline(
        {"echo": (echo_component, {"text": {"graphInput": {"inputName": "text"}}})},
        inputs=[{"name": "text"}],
    )
    with pytest.raises(MissingRequiredArgument):
        _compile(data)


def test_unknown_pipeline_argument_warns(argo_ctx, train_predict_pipeline):
    _require_imports()
    _compile(train_predict_pipeline("path"), {"ghost": 1}, ctx=argo_ctx)
    assert any("ghost" in w for w in argo_ctx.warnings["<root>"])


def test_container_root_is_entrypoint(train_component):
    _require_imports()
    workflow = _compile(train_component, {"epochs": 5})

    assert workflow["spec"]["entrypoint"] == "train-model"
    assert [t["name"] for t in workflow["spec"]["templates"]] == ["train-model"]
    assert workflow["spec"]["arguments"]["parameters"] == [{"name": "epochs", "value": "5"}]


def test_generate_name_defaults_when_unnamed(train_component):
    _require_imports()
    data = dict(train_component)
    data.pop("name")
    workflow = _compile(data)
    assert workflow["metadata"]["generateName"] == "pipeline-"
    assert workflow["metadata"]["annotations"] == {"cloud-pipelines.net/pipeline-editor": "true"}


# =====================================================
# Erros
# =====================================================

def test_constant_consumed_as_file_is_rejected(make_pipeline, cat_component):
    _require_imports()
    with pytest.raises(ConstantArtifactUnsupported) as exc:
        _compile(make_pipeline({"cat": (cat_component, {"file": "literal text"})}))
    assert exc.value.task_path == ("cat",)


def test_missing_required_task_argument(make_pipeline, echo_component):
    _require_imports()
    with pytest.raises(MissingRequiredArgument) as exc:
        _compile(make_pipeline({"echo": (echo_component, {})}))
    assert str(exc.value) == 'echo: Argument was not provided for required input "text"'


def test_cycle_is_rejected(make_pipeline, echo_component):
    _require_imports()
    relay = {
        "name": "Relay",
        "inputs": [{"name": "text"}],
        "outputs": [{"name": "out"}],
        "implementation": {"container": {"image": "alpine", "args": [{"inputValue": "text"}, {"outputPath": "out"}]}},
    }
    data = make_pipeline(
        {
            "a": (relay, {"text": {"taskOutput": {"taskId": "b", "outputName": "out"}}}),
            "b": (relay, {"text": {"taskOutput": {"taskId": "a", "outputName": "out"}}}),
        }
    )
    with pytest.raises(CyclicGraph):
        _compile(data)


def test_unresolved_component_reference():
    _require_imports()
    data = {
        "name": "Remote",
        "implementation": {
            "graph": {"tasks": {"remote": {"componentRef": {"url": "https://example.com/component.yaml"}}}}
        },
    }
    with pytest.raises(UnresolvedComponentReference):
        _compile(data)


# =====================================================
# Grafos aninhados
# =====================================================

def _inner_graph(make_pipeline, component, input_name):
    return make_pipeline(
        {"inner": (component, {input_name: {"graphInput": {"inputName": input_name}}})},
        name="Inner",
        inputs=[{"name": input_name}],
    )


def test_nested_graph_with_literal_is_parameter(make_pipeline, echo_component):
    _require_imports()
    inner = _inner_graph(make_pipeline, echo_component, "text")
    workflow = _compile(make_pipeline({"outer": (inner, {"text": "hello"})}))

    assert [t["name"] for t in workflow["spec"]["templates"]] == ["echo", "inner", "pipeline"]
    assert _templates(workflow)["inner"]["inputs"]["parameters"] == [{"name": "text"}]
    outer = _dag_tasks(workflow)["outer"]
    assert outer["template"] == "inner"
    assert outer["arguments"]["parameters"] == [{"name": "text", "value": "hello"}]
    inner_task = _dag_tasks(workflow, "inner")["inner"]
    assert inner_task["arguments"]["parameters"] == [{"name": "text", "value": "{{inputs.parameters.text}}"}]


def test_nested_graph_artifact_consumed_as_value_is_converted(
    make_pipeline, train_component, echo_component
):
    """
    Verifica que uma entrada de grafo aninhado recebida como artefato e
    consumida por valor passa por um conversor dentro do DAG aninhado.
    """
    _require_imports()
    inner = _inner_graph(make_pipeline, echo_component, "text")
    workflow = _compile(
        make_pipeline(
            {
                "train": (train_component, {}),
                "outer": (inner, {"text": {"taskOutput": {"taskId": "train", "outputName": "model"}}}),
            }
        )
    )

    inner_tasks = _dag_tasks(workflow, "inner")
    assert list(inner_tasks) == ["convert-text", "inner"]
    assert inner_tasks["convert-text"]["arguments"]["artifacts"] == [
        {"name": "artifact", "from": "{{inputs.artifacts.text}}"}
    ]
    assert "dependencies" not in inner_tasks["convert-text"]

    outer = _dag_tasks(workflow)["outer"]
    assert outer["arguments"]["artifacts"] == [
        {"name": "text", "from": "{{tasks.train.outputs.artifacts.model}}"}
    ]
    assert outer["dependencies"] == ["train"]


def test_nested_error_carries_full_path(make_pipeline, echo_component):
    _require_imports()
    inner = make_pipeline({"echo": (echo_component, {})}, name="Inner")
    with pytest.raises(MissingRequiredArgument) as exc:
        _compile(make_pipeline({"outer": (inner, {})}))
    assert exc.value.task_path == ("outer", "echo")
    assert str(exc.value).startswith("outer/echo: ")


# =====================================================
# Nomes e determinismo
# =====================================================

def test_emitted_names_are_kubernetes_legal(make_pipeline, train_component, predict_component, kubernetes_name_regex):
    _require_imports()
    data = make_pipeline(
        {
            "Train Model!": (train_component, {}),
            "predict_" + "x" * 80: (
                predict_component("value"),
                {"model": {"taskOutput": {"taskId": "Train Model!", "outputName": "model"}}},
            ),
        },
        name="My Pipeline",
    )
    workflow = _compile(data)

    names = [t["name"] for t in workflow["spec"]["templates"]]
    names += list(_dag_tasks(workflow))
    for name in names:
        assert re.match(kubernetes_name_regex, name), name
        assert len(name) <= 63


def test_compilation_is_deterministic(train_predict_pipeline):
    _require_imports()
    data = train_predict_pipeline("value")
    assert _compile(data) == _compile(data)


def test_referenced_tasks():
    _require_imports()
    values = [
        "{{tasks.b.outputs.artifacts.x}}",
        "prefix {{tasks.a.outputs.parameters.y}}",
        "{{inputs.parameters.z}}",
        "{{tasks.b.outputs.artifacts.w}}",
    ]
    assert referenced_tasks(values) == ["a", "b"]
