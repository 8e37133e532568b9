"""Alvo Kubernetes: Argo Workflows."""

from .compiler import ARGO_SYNTAX, build_argo_workflow, referenced_tasks, workflow_generate_name  # noqa: F401
