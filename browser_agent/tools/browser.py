"""Browser action tools and the browser port they drive."""

import base64
import json
from typing import Literal, Protocol

from pydantic import BaseModel, Field, field_validator, model_validator

from browser_agent.errors import ToolExecutionError
from browser_agent.models.agents import ToolName
from browser_agent.models.page import (
    ClickChanges,
    PageContext,
    PageStructure,
    QueryElementsResult,
    Screenshot,
    SearchResult,
)
from browser_agent.tools.base import Tool
from browser_agent.utils.logging import get_logger

logger = get_logger(__name__)

MAX_CLICK_SELECTORS = 50
MAX_FILL_FIELDS = 20
MAX_SEARCH_RESULTS = 50

ScrollDirection = Literal["up", "down", "top", "bottom"]
ObserveMode = Literal["interactive", "structure", "full"]
SearchType = Literal["text", "contains", "selector", "id"]


class BrowserPort(Protocol):
    """Browser automation backend consumed by the browser tools.

    Implementations raise any exception on failure; the agent loop turns it
    into an ``"Error: ..."`` observation.
    """

    async def navigate(self, url: str) -> None: ...

    def current_url(self) -> str: ...

    async def click(self, selector: str) -> None: ...

    async def batch_click(self, selectors: list[str]) -> None: ...

    async def click_with_changes(self, selector: str) -> ClickChanges: ...

    async def fill(self, selector: str, text: str) -> None: ...

    async def batch_fill(self, fields: dict[str, str]) -> None: ...

    async def press_enter(self) -> None: ...

    async def scroll(self, direction: str, amount: int = 0) -> None: ...

    async def screenshot(self) -> Screenshot: ...

    async def get_page_context(self) -> PageContext: ...

    async def get_page_structure(self) -> PageStructure: ...

    async def query_elements(self, selector: str, limit: int, extract: dict[str, str]) -> QueryElementsResult: ...

    async def search(self, type: str, query: str, limit: int) -> SearchResult: ...


class BrowserTool(Tool):
    """Base for tools backed by a :class:`BrowserPort`."""

    def __init__(self, browser: BrowserPort):
        self.browser = browser


# Input schemas
class NavigateInput(BaseModel):
    url: str = Field(..., min_length=1, description="URL to navigate to")


class ClickInput(BaseModel):
    selectors: list[str] = Field(
        ...,
        min_length=1,
        max_length=MAX_CLICK_SELECTORS,
        description=(
            "Array of CSS selectors to click (max 50). For single click use array with one element. "
            'Example: ["#button1"] or ["#checkbox1", "#checkbox2"]'
        ),
    )
    observe: bool = Field(
        default=False,
        description="Return page changes after clicking (new elements, modals, URL changes). Single element only.",
    )

    @model_validator(mode="after")
    def observe_single_selector(self) -> "ClickInput":
        if self.observe and len(self.selectors) > 1:
            raise ValueError("observe mode only works with single element, not batch")
        return self


class FillInput(BaseModel):
    selector: str | None = Field(default=None, description="CSS selector for single input field")
    text: str | None = Field(default=None, description="Text to input into single field")
    fields: dict[str, str] | None = Field(
        default=None,
        max_length=MAX_FILL_FIELDS,
        description='Map of CSS selectors to values for batch filling. Example: {"#name": "John", "#email": "j@x.com"}',
    )

    @model_validator(mode="after")
    def single_or_batch(self) -> "FillInput":
        if self.fields:
            return self
        if not self.selector or not self.text:
            raise ValueError("either ('selector' and 'text') or 'fields' is required")
        return self


class ScrollInput(BaseModel):
    direction: ScrollDirection = Field(..., description="Scroll direction")
    amount: int = Field(default=0, ge=0, description="Pixels to scroll for up/down; 0 scrolls one viewport")


class EmptyInput(BaseModel):
    pass


class ObserveInput(BaseModel):
    mode: ObserveMode = Field(
        default="structure",
        description=(
            "Observation mode: 'interactive' for buttons/links/inputs, "
            "'structure' for page layout and content sections, 'full' for both"
        ),
    )
    limit: int = Field(default=50, gt=0, description="Maximum structure elements to return")


class QueryElementsInput(BaseModel):
    selector: str = Field(
        ..., min_length=1, description="Exact CSS selector for target elements. Example: '.mail-item', 'tr.email'"
    )
    limit: int = Field(default=20, ge=1, le=100, description="Maximum elements to return (max: 100)")
    extract: dict[str, str] = Field(
        ...,
        min_length=1,
        description=(
            "Map of sub-selectors to extraction types: 'text', 'html', 'selector' (for later clicks) "
            "or 'attr:name'. Use '_self' for the main element."
        ),
    )


class SearchInput(BaseModel):
    type: SearchType = Field(
        ...,
        description="'text' (exact text), 'contains' (partial text), 'selector' (CSS with wildcards), 'id' (element ID)",
    )
    query: str = Field(..., min_length=1, description="Text, CSS selector or element ID to search for")
    limit: int = Field(default=10, description="Maximum results to return (max: 50)")

    @field_validator("limit")
    @classmethod
    def clamp_limit(cls, v: int) -> int:
        if v <= 0:
            return 10
        return min(v, MAX_SEARCH_RESULTS)


# Tools
class NavigateTool(BrowserTool):
    name = ToolName.BROWSER_NAVIGATE
    description = (
        "Navigate browser to a URL. Use this to open web pages or follow links. "
        "Returns the final URL after navigation (may differ due to redirects)."
    )
    input_schema_class = NavigateInput

    async def run(self, params: NavigateInput) -> str:
        await self.browser.navigate(params.url)
        return f"Navigated to {self.browser.current_url()}"


class ClickTool(BrowserTool):
    name = ToolName.BROWSER_CLICK
    description = (
        "Click on page elements. Pass one selector for a single click or up to 50 for a batch. "
        "Set 'observe' to see what changed after a single click (new modals, elements, URL changes)."
    )
    input_schema_class = ClickInput

    async def run(self, params: ClickInput) -> str:
        if params.observe:
            changes = await self.browser.click_with_changes(params.selectors[0])
            if not changes.success:
                raise ToolExecutionError(f"click failed: {changes.error}")
            return format_click_changes(changes)

        if len(params.selectors) == 1:
            await self.browser.click(params.selectors[0])
            return "Click successful"

        await self.browser.batch_click(params.selectors)
        return f"Successfully clicked {len(params.selectors)} elements"


class FillTool(BrowserTool):
    name = ToolName.BROWSER_FILL
    description = (
        "Fill text into form fields. Use 'selector' and 'text' for one field, or 'fields' for up to 20 fields. "
        "Clears existing content before filling."
    )
    input_schema_class = FillInput

    async def run(self, params: FillInput) -> str:
        if params.fields:
            await self.browser.batch_fill(params.fields)
            return f"Successfully filled {len(params.fields)} fields"

        await self.browser.fill(params.selector, params.text)
        return f"Filled '{params.selector}' with text"


class ScrollTool(BrowserTool):
    name = ToolName.BROWSER_SCROLL
    description = (
        "Scroll the page: 'up' or 'down' by one viewport (or 'amount' pixels), 'top' or 'bottom' of the page. "
        "Use this to reveal content below the fold."
    )
    input_schema_class = ScrollInput

    async def run(self, params: ScrollInput) -> str:
        await self.browser.scroll(params.direction, params.amount)
        return f"Scrolled {params.direction}"


class ScreenshotTool(BrowserTool):
    name = ToolName.BROWSER_SCREENSHOT
    description = (
        "Capture a screenshot of the visible viewport. Returns a base64 image data URL. "
        "Use scroll to capture other sections."
    )
    input_schema_class = EmptyInput

    async def run(self, params: EmptyInput) -> str:
        shot = await self.browser.screenshot()
        encoded = base64.b64encode(shot.data).decode("ascii")
        return f"data:image/{shot.format};base64,{encoded}"


class PressEnterTool(BrowserTool):
    name = ToolName.BROWSER_PRESS_ENTER
    description = "Press the Enter key. Use it to submit forms or trigger searches after filling an input."
    input_schema_class = EmptyInput

    async def run(self, params: EmptyInput) -> str:
        await self.browser.press_enter()
        return "Enter pressed"


class ObserveTool(BrowserTool):
    name = ToolName.BROWSER_OBSERVE
    description = (
        "Observe the current page. Modes: 'interactive' lists buttons, links and inputs; "
        "'structure' (default) shows the semantic layout with selectors; 'full' combines both."
    )
    input_schema_class = ObserveInput

    async def run(self, params: ObserveInput) -> str:
        if params.mode == "interactive":
            return format_page_context(await self.browser.get_page_context())
        if params.mode == "structure":
            return format_page_structure(await self.browser.get_page_structure(), params.limit)

        interactive = format_page_context(await self.browser.get_page_context())
        structure = format_page_structure(await self.browser.get_page_structure(), params.limit)
        return f"{interactive}\n\n{structure}"


class QueryElementsTool(BrowserTool):
    name = ToolName.BROWSER_QUERY_ELEMENTS
    description = (
        "Extract structured data from repeated elements matching an exact CSS selector "
        "(emails, products, news items). Returns nested selectors for later clicks."
    )
    input_schema_class = QueryElementsInput

    async def run(self, params: QueryElementsInput) -> str:
        result = await self.browser.query_elements(params.selector, params.limit, params.extract)
        return format_query_result(result)


class SearchTool(BrowserTool):
    name = ToolName.BROWSER_SEARCH
    description = (
        "Search for elements by exact text, partial text ('contains'), CSS selector or element ID. "
        "Always returns selectors and parent context for found elements."
    )
    input_schema_class = SearchInput

    async def run(self, params: SearchInput) -> str:
        result = await self.browser.search(params.type, params.query, params.limit)
        return format_search_result(result)


BROWSER_TOOL_CLASSES: tuple[type[BrowserTool], ...] = (
    NavigateTool,
    ClickTool,
    FillTool,
    ScrollTool,
    ScreenshotTool,
    PressEnterTool,
    ObserveTool,
    QueryElementsTool,
    SearchTool,
)


def create_browser_tools(browser: BrowserPort) -> list[BrowserTool]:
    """Instantiate every browser tool over one browser session."""
    return [tool_class(browser) for tool_class in BROWSER_TOOL_CLASSES]


# Observation formatting
def format_click_changes(changes: ClickChanges, max_elements: int = 10) -> str:
    lines = ["Click successful"]
    if changes.url_changed:
        lines.append(f"✓ URL changed to: {changes.new_url}")
    if changes.modal_opened:
        lines.append("✓ Modal/dialog opened")
    if changes.modal_closed:
        lines.append("✓ Modal/dialog closed")
    if changes.new_elements:
        lines.append(f"✓ {len(changes.new_elements)} new elements appeared:")
        for element in changes.new_elements[:max_elements]:
            label = element.text or element.aria_label or element.type
            lines.append(f"  - [{element.type}] {label} (selector: {element.selector})")
        if len(changes.new_elements) > max_elements:
            lines.append(f"  ... and {len(changes.new_elements) - max_elements} more")
    if changes.elements_removed:
        lines.append(f"✓ {changes.elements_removed} elements removed")
    return "\n".join(lines)


def format_page_context(page: PageContext) -> str:
    lines = [
        "PAGE OBSERVATION (Interactive Mode):",
        "",
        f"URL: {page.url}",
        f"Title: {page.title}",
        f"Visible Elements: {page.element_count} elements found",
        "",
        "INTERACTIVE ELEMENTS:",
    ]
    for element in page.visible_elements:
        label = element.text or element.aria_label or "(no text)"
        lines.append(f'- [{element.id}] {element.type}: "{label}" (selector: {element.selector})')
    lines += ["", "PAGE CONTENT PREVIEW:", page.text_content]
    return "\n".join(lines)


def _preview(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[:limit] + "..."


def format_page_structure(structure: PageStructure, limit: int = 50) -> str:
    lines = ["PAGE STRUCTURE:", "", f"URL: {structure.url}", f"Title: {structure.title}", "", "SEMANTIC STRUCTURE:"]

    for element in structure.elements[:limit]:
        line = f"{'  ' * element.level}<{element.tag_name}>"
        if element.id:
            line += f" #{element.id}"
        line += "".join(f".{cls}" for cls in element.classes[:2])
        if element.text:
            line += f': "{_preview(element.text, 50)}"'
        lines.append(f"{line} [{element.selector}]")

    if len(structure.elements) > limit:
        lines.append(f"... and {len(structure.elements) - limit} more elements (use limit parameter to see more)")

    lines += ["", "KEY SELECTORS (use these in search/query/click/fill tools):"]
    containers = {"section", "div", "main", "article"}
    key_elements = [
        element
        for element in structure.elements
        if element.id or (element.classes and element.tag_name in containers)
    ]
    for element in key_elements[:10]:
        description = element.tag_name
        if element.text:
            description += f': "{_preview(element.text, 30)}"'
        lines.append(f"- {description} → {element.selector}")

    return "\n".join(lines)


def format_query_result(result: QueryElementsResult) -> str:
    if result.count == 0:
        return "No elements found"

    lines = [f"Found {result.count} elements:", ""]
    for i, element in enumerate(result.elements, start=1):
        lines.append(f"#{i} [{element.selector}]")
        for key, value in element.data.items():
            if value:
                lines.append(f"  {key}: {json.dumps(value, ensure_ascii=False)}")
        lines.append("")
    return "\n".join(lines)


def format_search_result(result: SearchResult) -> str:
    if not result.found:
        return f'No results found for {result.type} search: "{result.query}"'

    payload = {
        "type": result.type,
        "query": result.query,
        "found": len(result.results),
        "results": [match.model_dump(exclude_defaults=True) for match in result.results],
    }
    return json.dumps(payload, indent=2, ensure_ascii=False)
