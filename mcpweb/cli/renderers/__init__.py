from .catalog_table_renderer import CatalogTableRenderer

__all__ = ["CatalogTableRenderer"]
