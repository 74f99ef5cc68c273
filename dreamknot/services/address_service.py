# dreamknot/services/address_service.py
from typing import Any, Dict

from sqlalchemy.orm import Session

from dreamknot.data.models.address import AddressModel
from dreamknot.domain.errors import NotFoundError, ValidationError
from dreamknot.repos.address_repo import AddressRepo
from dreamknot.utils.logging import get_logger

logger = get_logger(__name__)

REQUIRED_FIELDS = ("name", "address_line", "city", "country")


def _clean(data: Dict[str, Any]) -> Dict[str, Any]:
    for field in REQUIRED_FIELDS:
        if not (data.get(field) or "").strip():
            raise ValidationError(f"{field} is required", field=field)
    return {
        "name": data["name"].strip(),
        "phone": data.get("phone"),
        "address_line": data["address_line"].strip(),
        "city": data["city"].strip(),
        "state": data.get("state") or "",
        "zip": data.get("zip") or "",
        "country": data["country"].strip(),
        "is_default": bool(data.get("is_default")),
    }


class AddressService:
    """
    Saved addresses of a user, default first.

    Marking an address as default clears the flag on the user's other
    addresses in the same commit. Addresses of other users read as missing.
    """

    def __init__(self, db: Session):
        self.repo = AddressRepo(db)

    def list_addresses(self, user_id: int) -> list[AddressModel]:
        return self.repo.list_addresses(user_id)

    def create_address(self, user_id: int, data: Dict[str, Any]) -> AddressModel:
        values = _clean(data)
        try:
            if values["is_default"]:
                self.repo.unset_defaults(user_id)
            address = self.repo.add_address(AddressModel(user_id=user_id, **values))
            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise

        logger.info(f"Address {address.id} saved for user {user_id}")
        return address

    def update_address(self, user_id: int, address_id: int, data: Dict[str, Any]) -> AddressModel:
        address = self._owned(user_id, address_id)
        values = _clean(data)
        try:
            if values["is_default"]:
                self.repo.unset_defaults(user_id)
            for field, value in values.items():
                setattr(address, field, value)
            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise
        return address

    def delete_address(self, user_id: int, address_id: int) -> None:
        address = self._owned(user_id, address_id)
        self.repo.delete_address(address)
        self.repo.commit()
        logger.info(f"Address {address_id} deleted by user {user_id}")

    def _owned(self, user_id: int, address_id: int) -> AddressModel:
        address = self.repo.get_address(user_id, address_id)
        if not address:
            raise NotFoundError("Address")
        return address
