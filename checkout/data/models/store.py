from sqlalchemy import Boolean, Column, Integer, String, Numeric

from checkout.data.database import Base


class StoreModel(Base):
    __tablename__ = "stores"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    jurisdiction_code = Column(String(8), nullable=True)


class ComplianceRuleModel(Base):
    __tablename__ = "compliance_rules"

    jurisdiction_code = Column(String(8), primary_key=True)
    min_age = Column(Integer, nullable=False, default=21)
    must_verify_age = Column(Boolean, nullable=False, default=True)
    max_daily_dose_mg = Column(Numeric(10, 2), nullable=False)
