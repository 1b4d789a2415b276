from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from storefront.api.deps import current_user_id
from storefront.db import get_db
from storefront.repositories.address_repo import AddressRepository
from storefront.schemas.address_schema import AddressIn, AddressOut

router = APIRouter(prefix="/api/addresses", tags=["addresses"])


@router.get("", summary="List the caller's addresses")
def list_addresses(user_id: int = Depends(current_user_id), db: Session = Depends(get_db)):
    repo = AddressRepository(db)
    return [AddressOut.model_validate(a).model_dump() for a in repo.list_for_user(user_id)]


@router.post("", status_code=201, summary="Create an address")
def create_address(
    payload: AddressIn,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    repo = AddressRepository(db)
    a = repo.create(user_id, **payload.model_dump())
    db.commit()
    db.refresh(a)
    return AddressOut.model_validate(a).model_dump()
