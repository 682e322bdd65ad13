from .authorization import AccessDecision, Outcome, entry_redirect, evaluate, home_path

__all__ = ["AccessDecision", "Outcome", "entry_redirect", "evaluate", "home_path"]
