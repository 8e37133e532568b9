"""Alvo de nuvem gerenciada: Vertex AI Pipelines."""

from .compiler import (  # noqa: F401
    VERTEX_SYNTAX,
    build_vertex_pipeline_job,
    mlmd_value,
    pipeline_info_name,
    primitive_type,
)
