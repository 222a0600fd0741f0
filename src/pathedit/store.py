"""Element store used by the editor to read and replace path data"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional, Protocol

from pathedit.path import PathData

logger = logging.getLogger(__name__)

PATH_ELEMENT_TYPE = "path"


@dataclass(frozen=True)
class Element:
    """A document element. Only elements of type "path" carry PathData."""

    id: str
    data: Any
    type: str = PATH_ELEMENT_TYPE

    @property
    def is_path(self) -> bool:
        return self.type == PATH_ELEMENT_TYPE and isinstance(self.data, PathData)


class ElementStore(Protocol):
    """Collaborator owning the document elements."""

    def find_element(self, element_id: str) -> Optional[Element]: ...

    def replace_element_data(self, element_id: str, data: Any) -> None: ...

    def delete_element(self, element_id: str) -> None: ...

    def add_element(self, data: Any, element_type: str = PATH_ELEMENT_TYPE) -> str: ...


class InMemoryElementStore:
    """Ordered in-memory ElementStore."""

    def __init__(self, elements: Optional[List[Element]] = None, id_prefix: str = "el"):
        self._elements: Dict[str, Element] = {}
        self._counter = itertools.count(1)
        self._id_prefix = id_prefix
        for element in elements or []:
            self._elements[element.id] = element

    def __len__(self) -> int:
        return len(self._elements)

    @property
    def elements(self) -> List[Element]:
        return list(self._elements.values())

    def find_element(self, element_id: str) -> Optional[Element]:
        return self._elements.get(element_id)

    def replace_element_data(self, element_id: str, data: Any) -> None:
        element = self._elements.get(element_id)
        if element is None:
            logger.debug("replace_element_data: unknown element %s", element_id)
            return
        self._elements[element_id] = replace(element, data=data)

    def delete_element(self, element_id: str) -> None:
        self._elements.pop(element_id, None)

    def add_element(self, data: Any, element_type: str = PATH_ELEMENT_TYPE) -> str:
        element_id = f"{self._id_prefix}{next(self._counter)}"
        while element_id in self._elements:
            element_id = f"{self._id_prefix}{next(self._counter)}"
        self._elements[element_id] = Element(element_id, data, element_type)
        return element_id
