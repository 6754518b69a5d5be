# checkout/repos/catalog_repo.py
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from checkout.data.models.product import ProductModel, ProductVariantModel


class CatalogRepo:
    """Odczyty katalogu zawsze paczkami po id, nigdy zapytanie na linie."""

    def __init__(self, db: Session):
        self.db = db

    def get_products(self, product_ids: Iterable[int]) -> dict[int, ProductModel]:
        ids = set(product_ids)
        if not ids:
            return {}
        rows = self.db.execute(select(ProductModel).where(ProductModel.id.in_(ids))).scalars()
        return {p.id: p for p in rows}

    def get_variants(self, variant_ids: Iterable[int]) -> dict[int, ProductVariantModel]:
        ids = set(variant_ids)
        if not ids:
            return {}
        rows = self.db.execute(
            select(ProductVariantModel).where(ProductVariantModel.id.in_(ids))
        ).scalars()
        return {v.id: v for v in rows}
