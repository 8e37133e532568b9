# src/atlas_pipelines/core/config/__init__.py
"""
Camada de configuração do compilador.

A configuração controla convenções dos documentos emitidos (diretórios
de I/O, imagens dos conversores, limites de nomes, versões de schema) e
nunca altera a semântica da compilação.

Responsabilidades do pacote:
    - Defaults embarcados
    - Carregamento de overrides (YAML/JSON)
    - Resolução da configuração final via deep-merge determinístico

Princípios fundamentais:
    - Nenhuma heurística implícita durante merge
    - A mesma entrada sempre produz a mesma configuração final
"""

from .defaults import DEFAULT_CONFIG
from .errors import (
    ConfigError,
    ConfigFileNotFoundError,
    ConfigTypeConflictError,
    InvalidConfigRootTypeError,
    UnsupportedConfigFormatError,
)
from .loader import load_config
from .merge import deep_merge

__all__ = [
    "DEFAULT_CONFIG",
    "ConfigError",
    "ConfigFileNotFoundError",
    "ConfigTypeConflictError",
    "InvalidConfigRootTypeError",
    "UnsupportedConfigFormatError",
    "load_config",
    "deep_merge",
]
