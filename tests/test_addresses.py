"""Saved addresses: validation, default handling and ownership."""

import pytest

from conftest import CUSTOMER_ID, OTHER_CUSTOMER_ID
from dreamknot.domain.errors import NotFoundError, ValidationError
from dreamknot.services.address_service import AddressService

HOME = {
    "name": "Asha Rao",
    "phone": "9999999999",
    "address_line": "12 MG Road",
    "city": "Bengaluru",
    "state": "KA",
    "zip": "560001",
    "country": "IN",
}


@pytest.fixture()
def service(db):
    return AddressService(db)


class TestSaveAddress:
    def test_optional_fields_default_to_empty(self, service):
        address = service.create_address(CUSTOMER_ID, {**HOME, "state": None, "zip": None})

        assert address.state == ""
        assert address.zip == ""
        assert address.is_default is False

    @pytest.mark.parametrize("field", ["name", "address_line", "city", "country"])
    def test_required_field_missing(self, service, field):
        with pytest.raises(ValidationError) as exc:
            service.create_address(CUSTOMER_ID, {**HOME, field: "  "})
        assert exc.value.field == field
        assert service.list_addresses(CUSTOMER_ID) == []

    def test_new_default_replaces_old_one(self, service):
        first = service.create_address(CUSTOMER_ID, {**HOME, "is_default": True})
        second = service.create_address(CUSTOMER_ID, {**HOME, "city": "Mysuru", "is_default": True})

        addresses = service.list_addresses(CUSTOMER_ID)

        assert [a.id for a in addresses] == [second.id, first.id]
        assert [a.is_default for a in addresses] == [True, False]

    def test_default_of_another_user_is_untouched(self, service):
        theirs = service.create_address(OTHER_CUSTOMER_ID, {**HOME, "is_default": True})
        service.create_address(CUSTOMER_ID, {**HOME, "is_default": True})

        assert service.list_addresses(OTHER_CUSTOMER_ID)[0].id == theirs.id
        assert service.list_addresses(OTHER_CUSTOMER_ID)[0].is_default is True


class TestOwnership:
    def test_update_sets_default_and_replaces_fields(self, service):
        first = service.create_address(CUSTOMER_ID, {**HOME, "is_default": True})
        second = service.create_address(CUSTOMER_ID, HOME)

        updated = service.update_address(CUSTOMER_ID, second.id, {**HOME, "city": "Pune", "is_default": True})

        assert updated.city == "Pune"
        assert [(a.id, a.is_default) for a in service.list_addresses(CUSTOMER_ID)] == [
            (second.id, True),
            (first.id, False),
        ]

    def test_other_users_address_is_not_found(self, service):
        address = service.create_address(CUSTOMER_ID, HOME)

        with pytest.raises(NotFoundError):
            service.update_address(OTHER_CUSTOMER_ID, address.id, HOME)
        with pytest.raises(NotFoundError):
            service.delete_address(OTHER_CUSTOMER_ID, address.id)

        assert len(service.list_addresses(CUSTOMER_ID)) == 1


class TestAddressApi:
    def test_create_list_update_delete(self, client):
        resp = client.post("/addresses/", params={"user_id": CUSTOMER_ID}, json=HOME)
        assert resp.status_code == 201
        address_id = resp.json()["id"]

        resp = client.put(
            f"/addresses/{address_id}",
            params={"user_id": CUSTOMER_ID},
            json={**HOME, "address_line": "14 MG Road", "is_default": True},
        )
        assert resp.status_code == 200
        assert resp.json()["address_line"] == "14 MG Road"

        resp = client.get("/addresses/", params={"user_id": CUSTOMER_ID})
        assert [a["is_default"] for a in resp.json()["addresses"]] == [True]

        resp = client.delete(f"/addresses/{address_id}", params={"user_id": CUSTOMER_ID})
        assert resp.json() == {"message": "Address deleted successfully"}
        assert client.get("/addresses/", params={"user_id": CUSTOMER_ID}).json() == {"addresses": []}

    def test_missing_city_returns_400(self, client):
        body = {k: v for k, v in HOME.items() if k != "city"}

        resp = client.post("/addresses/", params={"user_id": CUSTOMER_ID}, json=body)

        assert resp.status_code == 400
        assert resp.json()["field"] == "city"

    def test_foreign_address_returns_404(self, client):
        address_id = client.post("/addresses/", params={"user_id": CUSTOMER_ID}, json=HOME).json()["id"]

        resp = client.delete(f"/addresses/{address_id}", params={"user_id": OTHER_CUSTOMER_ID})

        assert resp.status_code == 404
        assert resp.json()["detail"] == "Address not found"
