"""
Relation-set reconciliation for keywords, tags and images.

Each set is replaced wholesale: the owner's current rows are deleted and the
supplied set inserted. Duplicate ids in the input collapse to one row; for
images the last entry for a grid cell wins.
"""

from typing import Dict, List, Sequence, Tuple

from sqlalchemy.orm import Session

from ..db.models import ItemImageModel, ItemKeywordModel, ItemTagModel
from .primitives import EntityRef, generate_ulid
from .schemas import ImageSlot


def _unique(ids: Sequence[str]) -> List[str]:
    return list(dict.fromkeys(ids))


class RelationSets:
    """Replace an owner's keyword, tag and image sets."""

    def __init__(self, db: Session):
        self.db = db

    def _delete(self, model, ref: EntityRef) -> None:
        self.db.query(model).filter(
            model.entity_kind == ref.kind.value,
            model.entity_id == ref.id,
        ).delete(synchronize_session="fetch")
        self.db.flush()

    def replace_keywords(
        self, ref: EntityRef, keyword_ids: Sequence[str]
    ) -> List[str]:
        self._delete(ItemKeywordModel, ref)
        ids = _unique(keyword_ids)
        self.db.add_all(
            ItemKeywordModel(
                id=generate_ulid(),
                entity_kind=ref.kind.value,
                entity_id=ref.id,
                keyword_id=keyword_id,
            )
            for keyword_id in ids
        )
        self.db.flush()
        return ids

    def replace_tags(self, ref: EntityRef, tag_ids: Sequence[str]) -> List[str]:
        self._delete(ItemTagModel, ref)
        ids = _unique(tag_ids)
        self.db.add_all(
            ItemTagModel(
                id=generate_ulid(),
                entity_kind=ref.kind.value,
                entity_id=ref.id,
                tag_id=tag_id,
            )
            for tag_id in ids
        )
        self.db.flush()
        return ids

    def replace_images(
        self, ref: EntityRef, images: Sequence[ImageSlot]
    ) -> List[ImageSlot]:
        self._delete(ItemImageModel, ref)
        cells: Dict[Tuple[int, int], ImageSlot] = {}
        for image in images:
            cells[(image.rows_count, image.cols_count)] = image
        self.db.add_all(
            ItemImageModel(
                id=generate_ulid(),
                entity_kind=ref.kind.value,
                entity_id=ref.id,
                image_id=image.image_id,
                rows_count=image.rows_count,
                cols_count=image.cols_count,
            )
            for image in cells.values()
        )
        self.db.flush()
        return list(cells.values())

    def remove_all(self, ref: EntityRef) -> None:
        """Drop every relation row of ``ref`` (used on hard delete)."""
        for model in (ItemKeywordModel, ItemTagModel, ItemImageModel):
            self._delete(model, ref)

    # Query methods

    def keywords_for(self, ref: EntityRef) -> List[str]:
        rows = (
            self.db.query(ItemKeywordModel.keyword_id)
            .filter(
                ItemKeywordModel.entity_kind == ref.kind.value,
                ItemKeywordModel.entity_id == ref.id,
            )
            .order_by(ItemKeywordModel.keyword_id)
            .all()
        )
        return [row.keyword_id for row in rows]

    def tags_for(self, ref: EntityRef) -> List[str]:
        rows = (
            self.db.query(ItemTagModel.tag_id)
            .filter(
                ItemTagModel.entity_kind == ref.kind.value,
                ItemTagModel.entity_id == ref.id,
            )
            .order_by(ItemTagModel.tag_id)
            .all()
        )
        return [row.tag_id for row in rows]

    def images_for(self, ref: EntityRef) -> List[ItemImageModel]:
        return (
            self.db.query(ItemImageModel)
            .filter(
                ItemImageModel.entity_kind == ref.kind.value,
                ItemImageModel.entity_id == ref.id,
            )
            .order_by(ItemImageModel.rows_count, ItemImageModel.cols_count)
            .all()
        )
