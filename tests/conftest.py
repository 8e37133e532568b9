# tests/conftest.py
"""
Fixtures compartilhados para testes do Atlas Pipelines.

Este módulo define fixtures reutilizáveis que fornecem:
- componentes container mínimos (train / predict) no formato serializado
- uma fábrica de pipelines em grafo
- contexto de compilação controlado (CompilationContext)

Os componentes são descritos como dicts (mesmo formato dos arquivos
YAML) e convertidos para o IR via `component_spec_from_dict`, de forma
que os testes exercitem também o loader.

Invariantes:
    - Nenhuma fixture realiza I/O
    - Dados retornados são determinísticos e isolados
    - Imports do pacote são realizados de forma lazy para
      melhorar a clareza de erros durante falhas

Limites explícitos:
    - Não substituir testes de integração (ver tests/e2e)
    - Não conter lógica de compilação
"""

import copy

import pytest


KUBERNETES_NAME = r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?$"


# =====================================================
# Componentes
# =====================================================

@pytest.fixture
def train_component() -> dict:
    """Componente que produz o artefato `model`; `epochs` tem default."""
    return {
        "name": "Train model",
        "inputs": [
            {"name": "epochs", "type": "Integer", "default": "10"},
        ],
        "outputs": [
            {"name": "model"},
        ],
        "implementation": {
            "container": {
                "image": "python:3.9",
                "command": ["python", "train.py"],
                "args": [
                    "--epochs", {"inputValue": "epochs"},
                    "--model", {"outputPath": "model"},
                ],
            }
        },
    }


@pytest.fixture
def predict_component():
    """
    Fábrica do componente consumidor de `model`.

    `consume="path"` usa `inputPath`; `consume="value"` usa `inputValue`.
    """

    def _make(consume: str = "path") -> dict:
        placeholder = {"inputPath": "model"} if consume == "path" else {"inputValue": "model"}
        return {
            "name": "Predict",
            "inputs": [{"name": "model"}],
            "outputs": [{"name": "predictions"}],
            "implementation": {
                "container": {
                    "image": "python:3.9",
                    "command": ["python", "predict.py"],
                    "args": ["--model", placeholder, "--out", {"outputPath": "predictions"}],
                }
            },
        }

    return _make


@pytest.fixture
def echo_component() -> dict:
    """Componente que consome `text` por valor (obrigatório, sem default)."""
    return {
        "name": "Echo",
        "inputs": [{"name": "text"}],
        "implementation": {
            "container": {
                "image": "alpine",
                "command": ["echo", {"inputValue": "text"}],
            }
        },
    }


@pytest.fixture
def cat_component() -> dict:
    """Componente que consome `file` por caminho."""
    return {
        "name": "Cat",
        "inputs": [{"name": "file"}],
        "implementation": {
            "container": {
                "image": "alpine",
                "command": ["cat", {"inputPath": "file"}],
            }
        },
    }


# =====================================================
# Pipelines
# =====================================================

@pytest.fixture
def make_pipeline():
    """
    Fábrica de pipelines em grafo.

    `tasks` mapeia task_id → (componente dict, argumentos serializados).
    Retorna o dict serializado; use `component_spec_from_dict` para o IR.
    """

    def _make(tasks, *, name="Pipeline", inputs=None, outputs=None, output_values=None) -> dict:
        graph_tasks = {}
        for task_id, (component, arguments) in tasks.items():
            graph_tasks[task_id] = {
                "componentRef": {"name": component.get("name"), "spec": copy.deepcopy(component)},
                "arguments": dict(arguments or {}),
            }
        graph = {"tasks": graph_tasks}
        if output_values:
            graph["outputValues"] = output_values
        return {
            "name": name,
            "inputs": list(inputs or []),
            "outputs": list(outputs or []),
            "implementation": {"graph": graph},
        }

    return _make


@pytest.fixture
def train_predict_pipeline(make_pipeline, train_component, predict_component):
    """Fábrica do cenário `train -> predict` (consumo por caminho ou valor)."""

    def _make(consume: str = "path") -> dict:
        return make_pipeline(
            {
                "train": (train_component, {}),
                "predict": (
                    predict_component(consume),
                    {"model": {"taskOutput": {"taskId": "train", "outputName": "model"}}},
                ),
            },
            name="Train and predict",
        )

    return _make


# =====================================================
# Contexto
# =====================================================

@pytest.fixture
def argo_ctx():
    from atlas_pipelines.core.compiler.context import new_compilation_context

    return new_compilation_context(target="argo")


@pytest.fixture
def vertex_ctx():
    from atlas_pipelines.core.compiler.context import new_compilation_context

    return new_compilation_context(target="vertex")


@pytest.fixture
def kubernetes_name_regex() -> str:
    return KUBERNETES_NAME
