from .flare_adapter import FlareToolRegistry, ModernFlareTool

__all__ = ["FlareToolRegistry", "ModernFlareTool"]
