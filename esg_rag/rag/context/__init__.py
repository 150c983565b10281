"""
RAG Context

Token budget for the retrieved context placed in prompts.
"""

from .token_budget import TokenBudget, BudgetConfig, BudgetSelection

__all__ = [
    "TokenBudget",
    "BudgetConfig",
    "BudgetSelection",
]
