"""Research utilities: campaign summaries and trace exports."""
