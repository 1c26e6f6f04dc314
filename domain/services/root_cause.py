from __future__ import annotations

from domain.models import RootCauseCategory, RootCauseDiagram
from domain.ports.ids import DEFAULT_ID_FACTORY, IdFactory


def _replace_category(
    diagram: RootCauseDiagram, category_id: str, category: RootCauseCategory
) -> RootCauseDiagram:
    categories = tuple(
        category if existing.id == category_id else existing for existing in diagram.categories
    )
    return diagram.model_copy(update={"categories": categories})


def _category(diagram: RootCauseDiagram, category_id: str) -> RootCauseCategory | None:
    for category in diagram.categories:
        if category.id == category_id:
            return category
    return None


def add_category(
    diagram: RootCauseDiagram, name: str, id_factory: IdFactory = DEFAULT_ID_FACTORY
) -> RootCauseDiagram:
    taken = {category.id for category in diagram.categories}
    category_id = id_factory.new_id("category")
    while category_id in taken:
        category_id = id_factory.new_id("category")
    category = RootCauseCategory(id=category_id, name=name)
    return diagram.model_copy(update={"categories": (*diagram.categories, category)})


def rename_category(diagram: RootCauseDiagram, category_id: str, name: str) -> RootCauseDiagram:
    category = _category(diagram, category_id)
    if category is None:
        return diagram
    return _replace_category(diagram, category_id, category.model_copy(update={"name": name}))


def remove_category(diagram: RootCauseDiagram, category_id: str) -> RootCauseDiagram:
    categories = tuple(category for category in diagram.categories if category.id != category_id)
    if len(categories) == len(diagram.categories):
        return diagram
    return diagram.model_copy(update={"categories": categories})


def add_cause(diagram: RootCauseDiagram, category_id: str, cause: str) -> RootCauseDiagram:
    category = _category(diagram, category_id)
    text = cause.strip()
    if category is None or not text:
        return diagram
    updated = category.model_copy(update={"causes": (*category.causes, text)})
    return _replace_category(diagram, category_id, updated)


def remove_cause(diagram: RootCauseDiagram, category_id: str, index: int) -> RootCauseDiagram:
    category = _category(diagram, category_id)
    if category is None or not 0 <= index < len(category.causes):
        return diagram
    causes = category.causes[:index] + category.causes[index + 1 :]
    return _replace_category(diagram, category_id, category.model_copy(update={"causes": causes}))
