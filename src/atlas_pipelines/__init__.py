"""
Atlas Pipelines — compilador de pipelines de componentes.

Compila um ComponentSpec (grafo de tarefas) em:
    - Argo `Workflow` (Kubernetes)
    - Vertex AI `PipelineJob`
"""

from atlas_pipelines.core.config import load_config  # noqa: F401
from atlas_pipelines.core.errors import CompilerErrorPayload, compilation_error_payload  # noqa: F401
from atlas_pipelines.core.exceptions import CompilationError  # noqa: F401
from atlas_pipelines.core.spec import component_spec_from_dict, load_component_spec  # noqa: F401
from atlas_pipelines.export import to_json, to_yaml  # noqa: F401
from atlas_pipelines.targets.argo import build_argo_workflow  # noqa: F401
from atlas_pipelines.targets.vertex import build_vertex_pipeline_job  # noqa: F401

__version__ = "0.1.0"
