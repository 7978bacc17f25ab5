# marketplace/repositories/product_repo.py
import uuid

from sqlmodel import Session, select

from marketplace.models.product import Merchant, Product


class ProductRepository:
    """
    Data access layer for Merchant & Product lookups used by ordering.

    - Pure DB operations.
    - No FastAPI, no business logic.
    """

    # ----- Merchants -----

    def get_merchant(self, session: Session, merchant_id: uuid.UUID) -> Merchant | None:
        return session.get(Merchant, merchant_id)

    # ----- Products -----

    def get_many(
        self,
        session: Session,
        product_ids: list[uuid.UUID],
    ) -> dict[uuid.UUID, Product]:
        if not product_ids:
            return {}
        stmt = select(Product).where(Product.id.in_(product_ids))
        return {p.id: p for p in session.exec(stmt).all()}
