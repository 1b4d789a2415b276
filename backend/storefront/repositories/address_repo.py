from typing import List, Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from storefront.models.address import Address


class AddressRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, address_id: int) -> Optional[Address]:
        return self.db.get(Address, address_id)

    def list_for_user(self, user_id: int) -> List[Address]:
        return (
            self.db.query(Address)
            .filter(Address.user_id == user_id)
            .order_by(Address.is_default.desc(), Address.id)
            .all()
        )

    def create(self, user_id: int, **fields) -> Address:
        if fields.get("is_default"):
            # one default per user and address type
            self.db.execute(
                update(Address)
                .where(
                    Address.user_id == user_id,
                    Address.address_type == fields.get("address_type", "shipping"),
                )
                .values(is_default=False)
                .execution_options(synchronize_session=False)
            )
        a = Address(user_id=user_id, **fields)
        self.db.add(a)
        self.db.flush()
        return a
