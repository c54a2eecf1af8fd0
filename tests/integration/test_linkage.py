"""Integration tests for linking a purchase contract to a deposit contract."""

import pytest

from realty_contracts.models import MainContractType, Property, PurchaseContract
from realty_contracts.services.errors import (
    DepositAlreadyLinkedError,
    DepositNotEligibleError,
    DepositNotFoundError,
    PriceMismatchError,
)
from realty_contracts.services.linkage_service import LinkageResolver

pytestmark = pytest.mark.integration


class TestLinkageResolver:
    def test_no_link_requested(self, db_session, purchase_terms):
        assert LinkageResolver(db_session).resolve(purchase_terms()) is None

    def test_links_active_deposit(self, db_session, purchase_terms, active_deposit):
        deposit = active_deposit()
        resolved = LinkageResolver(db_session).resolve(
            purchase_terms(deposit_contract_id=deposit.id)
        )
        assert resolved.id == deposit.id

    def test_missing_deposit(self, db_session, purchase_terms):
        with pytest.raises(DepositNotFoundError) as exc_info:
            LinkageResolver(db_session).resolve(purchase_terms(deposit_contract_id=424242))
        error = exc_info.value
        assert error.http_status == 404
        assert error.field == "depositContractId"
        assert error.deposit_contract_id == 424242

    def test_draft_deposit_is_not_eligible(self, db_session, purchase_terms, deposit_service, deposit_terms):
        deposit = deposit_service.create(deposit_terms())
        with pytest.raises(DepositNotEligibleError):
            LinkageResolver(db_session).resolve(purchase_terms(deposit_contract_id=deposit.id))

    def test_rental_deposit_is_not_eligible(self, db_session, purchase_terms, active_deposit):
        deposit = active_deposit(main_contract_type=MainContractType.RENTAL)
        with pytest.raises(DepositNotEligibleError):
            LinkageResolver(db_session).resolve(purchase_terms(deposit_contract_id=deposit.id))

    def test_deposit_for_other_property_is_not_eligible(
        self, db_session, purchase_terms, active_deposit, owner
    ):
        other = Property(owner_id=owner.id, title="Hillside Flat")
        db_session.add(other)
        db_session.commit()
        deposit = active_deposit(property_id=other.id)

        with pytest.raises(DepositNotEligibleError):
            LinkageResolver(db_session).resolve(purchase_terms(deposit_contract_id=deposit.id))

    def test_price_mismatch(self, db_session, purchase_terms, active_deposit):
        deposit = active_deposit(agreed_price=2_000_000_000)
        with pytest.raises(PriceMismatchError) as exc_info:
            LinkageResolver(db_session).resolve(
                purchase_terms(deposit_contract_id=deposit.id, property_value=1_800_000_000)
            )
        assert exc_info.value.code == "PriceMismatch"


class TestOneToOne:
    def test_second_purchase_contract_is_rejected(
        self, purchase_service, purchase_terms, active_deposit, db_session
    ):
        deposit = active_deposit()
        first = purchase_service.create(purchase_terms(deposit_contract_id=deposit.id))

        with pytest.raises(DepositAlreadyLinkedError):
            purchase_service.create(purchase_terms(deposit_contract_id=deposit.id))

        linked = db_session.query(PurchaseContract).filter_by(deposit_contract_id=deposit.id).all()
        assert [c.id for c in linked] == [first.id]

    def test_unique_constraint_backs_the_check(
        self, purchase_service, purchase_terms, active_deposit, db_session, monkeypatch
    ):
        deposit = active_deposit()
        purchase_service.create(purchase_terms(deposit_contract_id=deposit.id))

        # Simulate the lookup losing a race against a concurrent insert
        monkeypatch.setattr(LinkageResolver, "find_linked_purchase_id", lambda self, _id: None)

        with pytest.raises(DepositAlreadyLinkedError):
            purchase_service.create(purchase_terms(deposit_contract_id=deposit.id))
        assert db_session.query(PurchaseContract).count() == 1

    def test_linked_deposit_reports_its_purchase(
        self, purchase_service, deposit_service, purchase_terms, active_deposit
    ):
        deposit = active_deposit()
        contract = purchase_service.create(purchase_terms(deposit_contract_id=deposit.id))

        deposit = deposit_service.get(deposit.id)
        assert deposit.linked_to_main_contract is True
        assert deposit.linked_purchase_contract_id == contract.id
        assert contract.deposit_contract_status.value == "ACTIVE"
