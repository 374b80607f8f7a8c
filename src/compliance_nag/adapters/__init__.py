"""Adapter layer package for reading declaration documents from disk."""

from .template_loader import (
    TEMPLATE_SUFFIXES,
    LoadedTemplate,
    TemplateLoader,
    TemplateLoaderError,
    TemplateYamlLoader,
)

__all__ = [
    "LoadedTemplate",
    "TEMPLATE_SUFFIXES",
    "TemplateLoader",
    "TemplateLoaderError",
    "TemplateYamlLoader",
]
