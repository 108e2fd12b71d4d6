from .rich_group import RichGroup

__all__ = ["RichGroup"]
