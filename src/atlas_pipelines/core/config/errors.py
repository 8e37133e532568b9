# src/atlas_pipelines/core/config/errors.py
"""
Exceções da camada de configuração do compilador.

Representam violações estruturais da configuração (arquivo ausente,
formato não suportado, raiz inválida, conflito de tipos no merge).
Não representam erros de compilação de pipelines: esses vivem em
`atlas_pipelines.core.exceptions`.

Invariantes:
    - Todas as exceções de configuração herdam de `ConfigError`
"""


class ConfigError(Exception):
    """
    Exceção base para erros de configuração do compilador.

    Permite captura genérica de erros de configuração e distinção clara
    entre falhas de configuração e falhas de compilação.
    """


class ConfigFileNotFoundError(ConfigError):
    """
    Arquivo de override de configuração não encontrado.

    Decisões arquiteturais:
        - Um caminho explicitamente informado deve existir
        - Não há fallback silencioso para os defaults
    """


class UnsupportedConfigFormatError(ConfigError):
    """
    Formato de arquivo de configuração não suportado.

    Formatos suportados (v1):
        - YAML (.yaml, .yml)
        - JSON (.json)
    """


class InvalidConfigRootTypeError(ConfigError):
    """Conteúdo raiz da configuração não é um dicionário (`dict`)."""


class ConfigTypeConflictError(ConfigError):
    """
    Conflito de tipos durante o deep-merge.

    Exemplo de conflito:
        - default:  {"argo": {"max_name_length": 63}}
        - override: {"argo": {"max_name_length": "63"}}

    Limites explícitos:
        - Não realiza coerção ou conversão de tipos
    """
