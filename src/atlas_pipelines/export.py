# src/atlas_pipelines/export.py
"""
Renderização textual dos documentos emitidos.

Os emissores produzem dicionários puros; este módulo apenas os serializa
em YAML (PyYAML) ou JSON, preservando a ordem das chaves emitidas.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Optional

import yaml  # PyYAML


def to_yaml(document: Dict[str, Any]) -> str:
    # width grande evita quebrar linhas de comando longas
    return yaml.safe_dump(
        document,
        sort_keys=False,
        default_flow_style=False,
        allow_unicode=True,
        width=float("inf"),
    )


def to_json(document: Dict[str, Any], *, indent: Optional[int] = 2) -> str:
    return json.dumps(document, indent=indent, ensure_ascii=False)


def write_document(document: Dict[str, Any], path: str) -> Path:
    """Grava o documento em `path`; o formato é inferido pela extensão (.yaml/.yml/.json)."""
    p = Path(path)
    suffix = p.suffix.lower()
    if suffix in {".yaml", ".yml"}:
        text = to_yaml(document)
    elif suffix == ".json":
        text = to_json(document)
    else:
        raise ValueError(f"Unsupported document format: {p.suffix}")
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(text, encoding="utf-8")
    return p
