import logging
import os
import tempfile
from pathlib import Path
from typing import Union

from pydantic import ValidationError

from billing.models import DeliveryPartner, Document

logger = logging.getLogger(__name__)

SEED_DELIVERY_PARTNERS = [
    DeliveryPartner(id="dp1", name="Express Delivery", charges=80),
    DeliveryPartner(id="dp2", name="Speedy Shipping", charges=100),
    DeliveryPartner(id="dp3", name="Fast Freight", charges=120),
]


class StoreError(Exception):
    """The JSON document could not be read or written."""


def default_document() -> Document:
    return Document(
        delivery_partners=[p.model_copy() for p in SEED_DELIVERY_PARTNERS],
    )


class JsonStore:
    """Whole-document persistence in a single JSON file.

    Every call to ``load`` re-reads the file and every ``save`` replaces it.
    Nothing spans a load -> mutate -> save sequence, so two overlapping
    sequences lose one side's changes (last save wins).
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)

    # ── reads ─────────────────────────────────────────────────────────────────

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> Document:
        if not self.path.exists():
            logger.info("No database at %s, writing seeded default", self.path)
            doc = default_document()
            self.save(doc)
            return doc
        try:
            raw = self.path.read_text(encoding="utf-8")
            return Document.model_validate_json(raw)
        except OSError as exc:
            raise StoreError(f"Cannot read {self.path}: {exc}") from exc
        except ValidationError as exc:
            raise StoreError(f"Malformed database {self.path}: {exc}") from exc

    # ── writes ────────────────────────────────────────────────────────────────

    def save(self, doc: Document) -> None:
        payload = doc.model_dump_json(by_alias=True, indent=2)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            # write beside the target and swap, so readers never see half a file
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(payload)
                os.replace(tmp_name, self.path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except OSError as exc:
            raise StoreError(f"Cannot write {self.path}: {exc}") from exc

    def reset(self) -> Document:
        doc = default_document()
        self.save(doc)
        return doc
