from sqlalchemy import select, update
from sqlalchemy.orm import Session

from dreamknot.data.models.address import AddressModel


class AddressRepo:
    def __init__(self, db: Session):
        self.db = db

    def list_addresses(self, user_id: int) -> list[AddressModel]:
        return list(
            self.db.execute(
                select(AddressModel)
                .where(AddressModel.user_id == user_id)
                .order_by(AddressModel.is_default.desc(), AddressModel.id)
            ).scalars()
        )

    def get_address(self, user_id: int, address_id: int) -> AddressModel | None:
        return self.db.execute(
            select(AddressModel).where(
                AddressModel.id == address_id,
                AddressModel.user_id == user_id,
            )
        ).scalar_one_or_none()

    def add_address(self, address: AddressModel) -> AddressModel:
        self.db.add(address)
        self.db.flush()
        return address

    def delete_address(self, address: AddressModel) -> None:
        self.db.delete(address)
        self.db.flush()

    def unset_defaults(self, user_id: int) -> None:
        self.db.execute(
            update(AddressModel)
            .where(AddressModel.user_id == user_id)
            .values(is_default=False)
            .execution_options(synchronize_session="evaluate")
        )

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()
