"""Emissores de documentos por alvo de execução."""
