from sqlalchemy import Column, String, Integer, BigInteger, DateTime, Text
from sqlalchemy.orm import declarative_base
from datetime import datetime

Base = declarative_base()

# Installation-wide key/value state, e.g. the keyword allocation counter
class Option(Base):
    __tablename__ = "options"

    key = Column(String(64), primary_key=True, index=True)
    # Decimal string so the counter is not bounded by the column type
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow)

class ShortLink(Base):
    __tablename__ = "url"

    # The primary key is the uniqueness constraint concurrent inserts race against
    keyword = Column(String(100), primary_key=True)
    url = Column(Text, index=True, nullable=False)
    title = Column(Text, nullable=True)
    timestamp = Column(DateTime, default=datetime.utcnow, index=True)
    ip = Column(String(41), index=True, nullable=False, default="")
    clicks = Column(BigInteger, nullable=False, default=0)

class ClickLog(Base):
    __tablename__ = "log"

    click_id = Column(Integer, primary_key=True, autoincrement=True)
    click_time = Column(DateTime, default=datetime.utcnow)
    shorturl = Column(String(100), index=True, nullable=False)
    referrer = Column(String(200), nullable=False, default="")
    user_agent = Column(String(255), nullable=False, default="")
    ip_address = Column(String(41), nullable=False, default="")
    country_code = Column(String(2), nullable=False, default="")
