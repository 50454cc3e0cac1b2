"""
Tool catalog for registering tool definitions and routing them by category.

The catalog only describes tools. Executing them is the dispatcher's job,
which looks up each call's category here to decide where it goes.
"""

import logging

from ponder.tools.browser import BROWSER_TOOLS
from ponder.tools.coding import CODING_TOOLS
from ponder.tools.context import CONTEXT_TOOLS
from ponder.tools.models import ToolCategory, ToolDefinition
from ponder.types import ToolSchemas

logger = logging.getLogger(__name__)


class ToolCatalog:
    """
    Registry of tool definitions and their routing categories.

    Definitions are kept in registration order; registering a name that
    already exists replaces its definition and category in place.

    Attributes
    ----------
    _definitions : dict[str, ToolDefinition]
        Definitions keyed by tool name.
    _categories : dict[str, ToolCategory]
        Routing table from tool name to category.

    Examples
    --------
    >>> catalog = ToolCatalog()
    >>> catalog.register(definition, ToolCategory.CODING)
    >>> catalog.category_of("write_code")
    <ToolCategory.CODING: 'coding'>
    """

    def __init__(self) -> None:
        self._definitions: dict[str, ToolDefinition] = {}
        self._categories: dict[str, ToolCategory] = {}

    def __len__(self) -> int:
        return len(self._definitions)

    def __contains__(self, name: object) -> bool:
        return name in self._definitions

    def register(self, definition: ToolDefinition, category: ToolCategory) -> None:
        """
        Register a tool definition under a category.

        Parameters
        ----------
        definition : ToolDefinition
            Definition to register.
        category : ToolCategory
            Capability the tool is routed to.
        """
        if definition.name in self._definitions:
            logger.debug(f"Overwriting existing tool: {definition.name}")

        self._definitions[definition.name] = definition
        self._categories[definition.name] = category
        logger.debug(f"Registered tool: {definition.name} ({category.value})")

    def get(self, name: str) -> ToolDefinition | None:
        return self._definitions.get(name)

    def category_of(self, name: str) -> ToolCategory | None:
        return self._categories.get(name)

    def all_definitions(self) -> list[ToolDefinition]:
        return list(self._definitions.values())

    def definitions_by_category(self, category: ToolCategory) -> list[ToolDefinition]:
        """
        Get the definitions registered under a category.

        Parameters
        ----------
        category : ToolCategory
            Category to filter by.

        Returns
        -------
        list[ToolDefinition]
            Matching definitions in registration order.
        """
        return [
            definition
            for name, definition in self._definitions.items()
            if self._categories.get(name) == category
        ]

    def coding_tools(self) -> list[ToolDefinition]:
        return self.definitions_by_category(ToolCategory.CODING)

    def context_tools(self) -> list[ToolDefinition]:
        return self.definitions_by_category(ToolCategory.CONTEXT)

    def browser_tools(self) -> list[ToolDefinition]:
        return self.definitions_by_category(ToolCategory.BROWSER)

    def has_browser_tools(self) -> bool:
        return bool(self.browser_tools())

    @staticmethod
    def to_schemas(definitions: list[ToolDefinition]) -> ToolSchemas:
        return [definition.to_openai_schema() for definition in definitions]


def create_default_catalog(browser_enabled: bool = True) -> ToolCatalog:
    """
    Build the catalog with the built-in tool set.

    Parameters
    ----------
    browser_enabled : bool, default=True
        Register the browser tools as well.

    Returns
    -------
    ToolCatalog
        Catalog with coding and context tools, plus browser tools if enabled.

    Examples
    --------
    >>> catalog = create_default_catalog(browser_enabled=False)
    >>> [d.name for d in catalog.coding_tools()]
    ['write_code', 'explain_code', 'debug_code']
    """
    catalog = ToolCatalog()

    for definition, category in CODING_TOOLS + CONTEXT_TOOLS:
        catalog.register(definition, category)

    if browser_enabled:
        for definition, category in BROWSER_TOOLS:
            catalog.register(definition, category)

    logger.debug(f"Created default catalog with {len(catalog)} tools")
    return catalog
