from __future__ import annotations

from typing import Optional, Protocol


class BusinessObject(Protocol):
    @property
    def id(self) -> str: ...

    @property
    def name(self) -> Optional[str]: ...

    @property
    def source_ref(self) -> Optional[str]: ...

    @property
    def target_ref(self) -> Optional[str]: ...


class RegistryElement(Protocol):
    """One visual element as exposed by an external modeling widget."""

    @property
    def id(self) -> str: ...

    @property
    def element_type(self) -> str: ...

    @property
    def x(self) -> float: ...

    @property
    def y(self) -> float: ...

    @property
    def business_object(self) -> Optional[BusinessObject]: ...
