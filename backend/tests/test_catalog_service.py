"""
Category/supplier service tests.

Verifies:
- Name resolution is case-insensitive and creates on first sight
- One new name referenced many times creates exactly one entity
- Duplicate names and in-use deletes are rejected
"""

import pytest

from pharmapos.models import Category, Supplier
from pharmapos.services import catalog_service
from pharmapos.services.catalog_service import (
    CatalogNotFoundError,
    DuplicateNameError,
    EntityInUseError,
    IdentityResolver,
)
from pharmapos.validation import ValidationError


class TestIdentityResolver:

    def test_resolves_existing_category_case_insensitively(self, db_session, category):
        resolver = IdentityResolver()
        assert resolver.resolve_category("obat bebas") == category.id
        assert resolver.resolve_category("  OBAT BEBAS ") == category.id
        assert resolver.created == []

    def test_creates_category_once(self, db_session):
        resolver = IdentityResolver()
        ids = {resolver.resolve_category("Wadah") for _ in range(10)}
        db_session.commit()

        assert len(ids) == 1
        assert db_session.query(Category).filter_by(name="Wadah").count() == 1
        assert resolver.created == [("category", ids.pop())]

    def test_created_supplier_gets_placeholder_contact(self, db_session):
        resolver = IdentityResolver()
        supplier_id = resolver.resolve_supplier("PT Anugrah Farma")
        db_session.commit()

        supplier = db_session.get(Supplier, supplier_id)
        assert supplier.name == "PT Anugrah Farma"
        assert supplier.email == "pt-anugrah-farma@supplier.local"
        assert supplier.phone == "-"
        assert supplier.address == "-"

    def test_blank_name_rejected(self, db_session):
        with pytest.raises(ValidationError):
            IdentityResolver().resolve_category("   ")

    def test_restore_forgets_rolled_back_entries(self, db_session):
        resolver = IdentityResolver()
        checkpoint = resolver.snapshot()
        resolver.resolve_category("Sementara")
        db_session.rollback()
        resolver.restore(checkpoint)

        assert resolver.cache == {}
        assert resolver.created == []
        assert db_session.query(Category).filter_by(name="Sementara").count() == 0

    def test_separate_resolvers_share_no_cache(self, db_session):
        first = IdentityResolver()
        first.resolve_category("Alkes")
        db_session.commit()

        second = IdentityResolver()
        assert second.cache == {}
        assert second.resolve_category("alkes") == first.resolve_category("Alkes")
        assert second.created == []


class TestCategoryCrud:

    def test_create_and_list_with_product_count(self, db_session, product):
        catalog_service.create_category(name="Suplemen")
        items = {c["name"]: c for c in catalog_service.list_categories()}

        assert items["Obat Bebas"]["product_count"] == 1
        assert items["Suplemen"]["product_count"] == 0

    def test_duplicate_name_rejected(self, db_session, category):
        with pytest.raises(DuplicateNameError) as exc:
            catalog_service.create_category(name="OBAT BEBAS")
        assert exc.value.details == {"kind": "category", "name": "OBAT BEBAS"}

    def test_delete_in_use_rejected(self, db_session, category, product):
        with pytest.raises(EntityInUseError) as exc:
            catalog_service.delete_category(category.id)
        assert exc.value.details["product_count"] == 1

    def test_delete_unused(self, db_session):
        cat = catalog_service.create_category(name="Kosong")
        catalog_service.delete_category(cat.id)
        assert db_session.query(Category).filter_by(name="Kosong").count() == 0

    def test_delete_missing(self, db_session):
        with pytest.raises(CatalogNotFoundError):
            catalog_service.delete_category(424242)


class TestSupplierCrud:

    def test_create_requires_contact_details(self, db_session):
        with pytest.raises(ValidationError):
            catalog_service.create_supplier(name="PT X", phone="12", address="Jl. Mawar 1")
        with pytest.raises(ValidationError):
            catalog_service.create_supplier(name="PT X", phone="0812-000", address="Jl")

    def test_create_and_delete(self, db_session):
        sup = catalog_service.create_supplier(
            name="CV Sehat", phone="0812-1111", address="Jl. Melati 12", email="cv@sehat.id",
        )
        assert [s["name"] for s in catalog_service.list_suppliers()] == ["CV Sehat"]
        catalog_service.delete_supplier(sup.id)
        assert catalog_service.list_suppliers() == []

    def test_duplicate_name_rejected(self, db_session, supplier):
        with pytest.raises(DuplicateNameError):
            catalog_service.create_supplier(
                name="pt kimia farma", phone="021-000000", address="Jl. Lain 1",
            )
