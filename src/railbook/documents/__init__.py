from .renderer import RenderedDocument, render, render_document

__all__ = ["RenderedDocument", "render", "render_document"]
