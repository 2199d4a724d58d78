from sqlalchemy import Column, Integer, String

from query_service.core.database import Base


DEMO_USERS = [
    (1, "Alice"),
    (2, "Bob"),
    (3, "Carol"),
]


# =========================
# User
# =========================
class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)
