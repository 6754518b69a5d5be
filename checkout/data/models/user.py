from sqlalchemy import Boolean, Column, Date, Integer, String
from checkout.data.database import Base

class UserModel(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)

    #ustawiane przez zewnetrzny proces weryfikacji wieku
    date_of_birth = Column(Date, nullable=True)
    age_verified = Column(Boolean, nullable=False, default=False)
