from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

from src.domain.entities.image import ImageEntity
from src.domain.errors import CorruptChain, Forbidden, NotFound

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 64


class ImageLookup(Protocol):
    def get(self, image_id: str) -> ImageEntity | None: ...


@dataclass(frozen=True)
class Resolution:
    anchor: ImageEntity
    root: ImageEntity

    @property
    def is_root(self) -> bool:
        return self.anchor.id == self.root.id


@dataclass
class DerivationResolver:
    """Find the root (original upload) of any image in a derivation chain.

    Derived images written by this service point straight at their root, so
    resolution is a single hop. Older rows that only point at their immediate
    parent are still followed link by link, up to ``max_depth`` hops.
    """

    image_repo: ImageLookup
    max_depth: int = DEFAULT_MAX_DEPTH

    def get_owned(self, user_id: str, image_id: str) -> ImageEntity:
        image = self.image_repo.get(image_id)
        if image is None or image.user_id != user_id:
            raise NotFound(f"Image not found: {image_id}")
        return image

    def resolve(self, user_id: str, image_id: str) -> Resolution:
        anchor = self.get_owned(user_id, image_id)
        current = anchor
        seen = {anchor.id}
        hops = 0
        while current.original_id is not None:
            hops += 1
            if hops > self.max_depth:
                logger.error(
                    "Derivation chain of %s exceeds %d hops", anchor.id, self.max_depth
                )
                raise CorruptChain(
                    f"Derivation chain of {anchor.id} exceeds {self.max_depth} hops"
                )
            parent_id = current.original_id
            if parent_id in seen:
                logger.error("Cycle in derivation chain of %s at %s", anchor.id, parent_id)
                raise CorruptChain(f"Cycle in derivation chain of {anchor.id} at {parent_id}")
            seen.add(parent_id)
            parent = self.image_repo.get(parent_id)
            if parent is None:
                logger.error("Derivation chain of %s broken at %s", anchor.id, parent_id)
                raise CorruptChain(f"Derivation chain of {anchor.id} broken at {parent_id}")
            current = parent

        if current.user_id != user_id:
            raise Forbidden(f"Root of image {anchor.id} belongs to another user")
        return Resolution(anchor=anchor, root=current)
