# src/atlas_pipelines/core/config/defaults.py
"""
Defaults embarcados do compilador.

Os valores replicam as convenções dos documentos emitidos:
    - argo:   diretórios de I/O do container, imagem do conversor
              artefato→parâmetro, limite de nomes Kubernetes, anotações
    - vertex: imagem do conversor parâmetro→artefato, versões de schema,
              cache de tarefas, limite de nomes

Overrides são aplicados por `load_config` via deep-merge; este módulo
nunca é mutado.
"""

from __future__ import annotations

from typing import Any, Dict

DEFAULT_CONFIG: Dict[str, Any] = {
    "argo": {
        "container_inputs_dir": "/tmp/inputs",
        "container_outputs_dir": "/tmp/outputs",
        "io_file_name": "data",
        "converter_image": "alpine",
        "max_name_length": 63,
        "max_generate_name_length": 240,
        "workflow_annotations": {
            "cloud-pipelines.net/pipeline-editor": "true",
        },
    },
    "vertex": {
        "converter_image": "alpine",
        "sdk_version": "Cloud-Pipelines",
        "schema_version": "2.0.0",
        "enable_cache": True,
        "max_name_length": 128,
    },
}
