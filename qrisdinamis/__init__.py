"""Static to dynamic QRIS payload conversion."""
