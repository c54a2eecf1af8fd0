"""Contract tests for the purchase contract endpoints."""

import pytest

pytestmark = pytest.mark.contract


@pytest.fixture
def purchase_payload(listing, customer, agent):
    return {
        "propertyId": listing.id,
        "customerId": customer.id,
        "agentId": agent.id,
        "propertyValue": 2_000_000_000,
        "advancePaymentAmount": 200_000_000,
        "commissionAmount": 40_000_000,
        "startDate": "2026-01-15",
    }


class TestCreate:
    def test_independent_contract(self, client, purchase_payload):
        response = client.post("/api/purchase-contracts", json=purchase_payload)

        assert response.status_code == 201
        body = response.json()
        assert body["contractNumber"].startswith("PC-")
        assert body["status"] == "DRAFT"
        assert body["hasDepositContract"] is False
        assert body["depositContractId"] is None
        assert body["commissionAmount"] == 40_000_000

    def test_linked_contract(self, client, purchase_payload, active_deposit):
        deposit = active_deposit()
        purchase_payload["depositContractId"] = deposit.id

        response = client.post("/api/purchase-contracts", json=purchase_payload)

        assert response.status_code == 201
        created = response.json()
        assert created["hasDepositContract"] is True

        detail = client.get(f"/api/purchase-contracts/{created['id']}").json()
        assert detail["depositContractStatus"] == "ACTIVE"

    def test_commission_not_below_value(self, client, purchase_payload):
        purchase_payload.update(
            propertyValue=1_000_000_000, commissionAmount=1_000_000_000, advancePaymentAmount=0
        )
        response = client.post("/api/purchase-contracts", json=purchase_payload)

        assert response.status_code == 422
        error = response.json()["error"]
        assert error["code"] == "InvalidCommission"
        assert error["field"] == "commissionAmount"

    def test_price_mismatch(self, client, purchase_payload, active_deposit):
        deposit = active_deposit()
        purchase_payload.update(depositContractId=deposit.id, propertyValue=1_800_000_000)

        response = client.post("/api/purchase-contracts", json=purchase_payload)

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "PriceMismatch"

    def test_unknown_deposit(self, client, purchase_payload):
        purchase_payload["depositContractId"] = 31337
        response = client.post("/api/purchase-contracts", json=purchase_payload)

        assert response.status_code == 404
        error = response.json()["error"]
        assert error["code"] == "DepositNotFound"
        assert error["field"] == "depositContractId"

    def test_deposit_already_linked(self, client, purchase_payload, active_deposit):
        deposit = active_deposit()
        purchase_payload["depositContractId"] = deposit.id
        client.post("/api/purchase-contracts", json=purchase_payload)

        response = client.post("/api/purchase-contracts", json=purchase_payload)

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "DepositAlreadyLinked"


class TestUpdate:
    def test_deposit_link_is_not_updatable(self, client, purchase_payload, active_deposit):
        contract_id = client.post("/api/purchase-contracts", json=purchase_payload).json()["id"]
        deposit = active_deposit()

        response = client.put(
            f"/api/purchase-contracts/{contract_id}", json={"depositContractId": deposit.id}
        )

        assert response.status_code == 422
        detail = client.get(f"/api/purchase-contracts/{contract_id}").json()
        assert detail["depositContractId"] is None

    def test_partial_update(self, client, purchase_payload):
        contract_id = client.post("/api/purchase-contracts", json=purchase_payload).json()["id"]

        response = client.put(
            f"/api/purchase-contracts/{contract_id}", json={"specialTerms": "Notary fees split"}
        )

        assert response.status_code == 200
        assert response.json()["specialTerms"] == "Notary fees split"
        assert response.json()["propertyValue"] == 2_000_000_000


class TestLifecycle:
    def test_approve_schedules_payments(self, client, purchase_payload):
        contract_id = client.post("/api/purchase-contracts", json=purchase_payload).json()["id"]

        response = client.post(f"/api/purchase-contracts/{contract_id}/approve")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "WAITING_OFFICIAL"
        amounts = {p["paymentType"]: p["amount"] for p in body["payments"]}
        assert amounts == {
            "ADVANCE": 200_000_000,
            "SERVICE_FEE": 40_000_000,
            "FULL_PAY": 1_800_000_000,
        }

    def test_approve_completed_contract_conflicts(self, client, purchase_payload):
        contract_id = client.post("/api/purchase-contracts", json=purchase_payload).json()["id"]
        client.post(f"/api/purchase-contracts/{contract_id}/approve")
        done = client.post(f"/api/purchase-contracts/{contract_id}/complete-paperwork")
        assert done.json()["status"] == "COMPLETED"

        response = client.post(f"/api/purchase-contracts/{contract_id}/approve")

        assert response.status_code == 409
        error = response.json()["error"]
        assert error["code"] == "InvalidStateTransition"

    def test_void(self, client, purchase_payload, admin):
        contract_id = client.post("/api/purchase-contracts", json=purchase_payload).json()["id"]
        client.post(f"/api/purchase-contracts/{contract_id}/approve")

        response = client.post(
            f"/api/purchase-contracts/{contract_id}/void", headers={"X-Actor-Id": str(admin.id)}
        )

        assert response.status_code == 200
        assert response.json()["status"] == "VOIDED"
        ledger = client.get(f"/api/contracts/purchase/{contract_id}/ledger").json()
        assert ledger["state"] == "FAILED"

    def test_owner_cancels(self, client, purchase_payload, owner):
        contract_id = client.post("/api/purchase-contracts", json=purchase_payload).json()["id"]
        client.post(f"/api/purchase-contracts/{contract_id}/approve")

        response = client.post(
            f"/api/parties/purchase-contracts/{contract_id}/cancel",
            json={"cancelledBy": "OWNER", "reason": "Sold elsewhere"},
            headers={"X-Actor-Id": str(owner.id)},
        )

        assert response.status_code == 200
        assert response.json()["status"] == "CANCELLED"
        detail = client.get(f"/api/purchase-contracts/{contract_id}").json()
        assert detail["cancelledBy"] == "OWNER"
        assert detail["cancellationReason"] == "Sold elsewhere"


class TestList:
    def test_has_deposit_contract_filter(self, client, purchase_payload, active_deposit):
        client.post("/api/purchase-contracts", json=purchase_payload)
        deposit = active_deposit()
        linked = client.post(
            "/api/purchase-contracts", json={**purchase_payload, "depositContractId": deposit.id}
        ).json()

        response = client.get("/api/purchase-contracts", params={"hasDepositContract": "true"})

        body = response.json()
        assert [row["id"] for row in body["data"]] == [linked["id"]]
        assert body["paging"]["total"] == 1

    def test_search(self, client, purchase_payload):
        created = client.post("/api/purchase-contracts", json=purchase_payload).json()

        hit = client.get("/api/purchase-contracts", params={"search": "riverside"}).json()
        miss = client.get("/api/purchase-contracts", params={"search": "harbour"}).json()

        assert [row["id"] for row in hit["data"]] == [created["id"]]
        assert miss["data"] == []
        assert miss["paging"]["totalPages"] == 0
