# checkout/repos/store_repo.py
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from checkout.data.models.store import StoreModel, ComplianceRuleModel


class StoreRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_store(self, store_id: int) -> StoreModel | None:
        return self.db.get(StoreModel, store_id)

    def get_stores(self, store_ids: Iterable[int]) -> dict[int, StoreModel]:
        ids = set(store_ids)
        if not ids:
            return {}
        rows = self.db.execute(select(StoreModel).where(StoreModel.id.in_(ids))).scalars()
        return {s.id: s for s in rows}

    def get_compliance_rule(self, jurisdiction_code: str) -> ComplianceRuleModel | None:
        return self.db.get(ComplianceRuleModel, jurisdiction_code.upper())
