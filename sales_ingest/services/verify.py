from __future__ import annotations

from dataclasses import dataclass, field

from ..db.store import SaleStore
from ..models.sale_record import SaleCategory

"""Post-import verification: per-category counts and duplicate row_hash groups."""


@dataclass(frozen=True)
class CategoryCheck:
    category: SaleCategory
    count: int
    duplicate_hashes: list[tuple[str, int]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.duplicate_hashes

    def to_dict(self) -> dict[str, object]:
        return {
            "category": self.category.value,
            "table": self.category.table_name,
            "count": self.count,
            "duplicateHashes": [{"rowHash": h, "count": n} for h, n in self.duplicate_hashes],
        }


def verify_store(
    store: SaleStore, categories: list[SaleCategory] | None = None
) -> list[CategoryCheck]:
    return [
        CategoryCheck(
            category=c,
            count=store.count(c),
            duplicate_hashes=store.duplicate_hashes(c),
        )
        for c in categories or list(SaleCategory)
    ]
