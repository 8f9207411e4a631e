from sqlalchemy import Column, Integer, String, BigInteger, DateTime, func, ForeignKey
from sqlalchemy.orm import declarative_base

Base = declarative_base()

# SQLite only autoincrements INTEGER PRIMARY KEY columns
ID = BigInteger().with_variant(Integer, "sqlite")

class Account(Base):
    __tablename__ = "accounts"
    __mapper_args__ = {"eager_defaults": True}
    id = Column(ID, primary_key=True, autoincrement=True)
    owner_name = Column(String(255), nullable=False)
    currency = Column(String(8), nullable=False)
    balance = Column(BigInteger, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, server_default=func.now())

class Entry(Base):
    __tablename__ = "entries"
    __mapper_args__ = {"eager_defaults": True}
    id = Column(ID, primary_key=True, autoincrement=True)
    account_id = Column(ID, ForeignKey("accounts.id"), nullable=False, index=True)
    amount = Column(BigInteger, nullable=False)  # signed delta, minor units
    created_at = Column(DateTime, nullable=False, server_default=func.now())

class Transfer(Base):
    __tablename__ = "transfers"
    __mapper_args__ = {"eager_defaults": True}
    id = Column(ID, primary_key=True, autoincrement=True)
    from_account_id = Column(ID, ForeignKey("accounts.id"), nullable=False, index=True)
    to_account_id = Column(ID, ForeignKey("accounts.id"), nullable=False, index=True)
    amount = Column(BigInteger, nullable=False)  # always positive
    created_at = Column(DateTime, nullable=False, server_default=func.now())
