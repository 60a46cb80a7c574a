from sqlalchemy import Column, Index, Integer, String, func

from app.database.base import Base


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False, unique=True)

    unit = Column(String, default="")
    category = Column(String, default="")
    brand = Column(String, default="")

    stock = Column(Integer, nullable=False, default=0)
    status = Column(String, default="")
    image = Column(String, default="")


# Names are unique regardless of case.
Index("uq_products_name_lower", func.lower(Product.__table__.c.name), unique=True)


__all__ = ["Product"]
