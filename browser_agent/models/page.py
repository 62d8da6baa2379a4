"""Page snapshots returned by the browser port."""

from pydantic import BaseModel, Field


class UIElement(BaseModel):
    """Interactive element visible on the page."""

    id: str = ""
    type: str = ""
    text: str = ""
    aria_label: str = ""
    selector: str


class PageContext(BaseModel):
    """Interactive view of the page."""

    url: str
    title: str = ""
    element_count: int = 0
    visible_elements: list[UIElement] = Field(default_factory=list)
    text_content: str = ""


class StructureElement(BaseModel):
    """One node of the semantic page outline."""

    tag_name: str
    selector: str
    id: str = ""
    classes: list[str] = Field(default_factory=list)
    text: str = ""
    level: int = 0


class PageStructure(BaseModel):
    """Semantic outline of the page (sections, headers, key containers)."""

    url: str
    title: str = ""
    elements: list[StructureElement] = Field(default_factory=list)


class Screenshot(BaseModel):
    """Captured viewport image."""

    data: bytes
    format: str = "png"


class ClickChanges(BaseModel):
    """What changed on the page after a click."""

    success: bool = True
    error: str = ""
    url_changed: bool = False
    new_url: str = ""
    modal_opened: bool = False
    modal_closed: bool = False
    new_elements: list[UIElement] = Field(default_factory=list)
    elements_removed: int = 0


class QueriedElement(BaseModel):
    """Data extracted from one matched element."""

    selector: str
    data: dict[str, str] = Field(default_factory=dict)


class QueryElementsResult(BaseModel):
    count: int = 0
    elements: list[QueriedElement] = Field(default_factory=list)


class SearchMatch(BaseModel):
    """Element found by a page search."""

    selector: str
    tag_name: str = ""
    text: str = ""
    parent_selector: str = ""
    attributes: dict[str, str] = Field(default_factory=dict)


class SearchResult(BaseModel):
    type: str
    query: str
    results: list[SearchMatch] = Field(default_factory=list)

    @property
    def found(self) -> bool:
        return bool(self.results)
