"""Atlas Pipelines — núcleo do compilador (IR, erros, configuração, estágios)."""
