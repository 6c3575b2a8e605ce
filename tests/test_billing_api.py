from __future__ import annotations

from conftest import API, add_member, complete_ticket, create_ticket, create_workspace, signup


def _billing_setup(client):
    owner, owner_headers = signup(client, "owner@example.com", "Olga")
    dev, dev_headers = signup(client, "dev@example.com", "Dev")
    workspace = create_workspace(client, owner_headers)
    add_member(client, owner_headers, workspace["id"], dev["id"])

    first = create_ticket(client, owner_headers, workspace["id"], dev["id"], title="Landing page")
    second = create_ticket(client, owner_headers, workspace["id"], dev["id"], title="Pricing page")
    complete_ticket(client, dev_headers, first["id"], 3)
    complete_ticket(client, dev_headers, second["id"], 2)
    return owner, owner_headers, dev, dev_headers, workspace, [first, second]


def _manual_item(client, headers, workspace_id, **fields):
    payload = {"title": "Hosting setup", "hours": 1}
    payload.update(fields)
    response = client.post(f"{API}/billing/workspace/{workspace_id}/manual-item", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def test_generate_user_bill(client) -> None:
    owner, headers, dev, _, workspace, tickets = _billing_setup(client)
    item = _manual_item(client, headers, workspace["id"], user_id=dev["id"])

    response = client.post(
        f"{API}/billing/generate",
        json={
            "workspace_id": workspace["id"],
            "ticket_ids": [t["id"] for t in tickets],
            "manual_item_ids": [item["id"]],
            "user_id": dev["id"],
            "hourly_rate": 50,
        },
        headers=headers,
    )
    assert response.status_code == 200, response.text
    bill = response.json()
    assert bill["summary"]["total_hours"] == 6
    assert bill["summary"]["total_amount"] == 300
    assert bill["summary"]["total_items"] == 3
    assert bill["user"]["id"] == dev["id"]
    assert bill["is_agency_level"] is False

    # Generating a bill does not change payment status
    listed = client.get(f"{API}/billing/workspace/{workspace['id']}/user/{dev['id']}", headers=headers).json()
    assert {t["payment_status"] for t in listed} == {"pending-pay"}


def test_generate_agency_bill_with_unassigned_item(client) -> None:
    owner, headers, dev, _, workspace, tickets = _billing_setup(client)
    item = _manual_item(client, headers, workspace["id"], hours=4)

    response = client.post(
        f"{API}/billing/generate",
        json={
            "workspace_id": workspace["id"],
            "ticket_ids": [tickets[0]["id"]],
            "manual_item_ids": [item["id"]],
            "hourly_rate": 10,
            "is_agency_level": True,
        },
        headers=headers,
    )
    assert response.status_code == 200
    assert response.json()["summary"]["total_amount"] == 70
    assert response.json()["user"] is None


def test_generate_rejects_bad_input(client) -> None:
    owner, headers, dev, dev_headers, workspace, tickets = _billing_setup(client)
    base = {"workspace_id": workspace["id"], "user_id": dev["id"], "hourly_rate": 50}

    empty = client.post(f"{API}/billing/generate", json=base, headers=headers)
    assert empty.status_code == 400
    assert empty.json() == {"message": "Select at least one ticket or manual item to bill"}

    zero_rate = client.post(
        f"{API}/billing/generate",
        json={**base, "ticket_ids": [tickets[0]["id"]], "hourly_rate": 0},
        headers=headers,
    )
    assert zero_rate.status_code == 400

    nothing_billable = client.post(
        f"{API}/billing/generate",
        json={**base, "ticket_ids": [9999]},
        headers=headers,
    )
    assert nothing_billable.status_code == 400
    assert nothing_billable.json() == {"message": "No valid items found for billing"}

    not_owner = client.post(
        f"{API}/billing/generate",
        json={**base, "ticket_ids": [tickets[0]["id"]]},
        headers=dev_headers,
    )
    assert not_owner.status_code == 404


def test_billable_lists(client) -> None:
    owner, headers, dev, dev_headers, workspace, tickets = _billing_setup(client)
    in_progress = create_ticket(client, headers, workspace["id"], owner["id"], title="Unfinished")
    client.patch(f"{API}/tickets/{in_progress['id']}/hours", json={"hours_worked": 4}, headers=headers)

    groups = client.get(f"{API}/billing/workspace/{workspace['id']}/billable", headers=headers).json()
    assert len(groups) == 1
    assert groups[0]["user"]["id"] == dev["id"]
    assert {t["id"] for t in groups[0]["tickets"]} == {t["id"] for t in tickets}

    all_billable = client.get(f"{API}/billing/workspace/{workspace['id']}/tickets", headers=headers).json()
    assert in_progress["id"] not in [t["id"] for t in all_billable]

    assert client.get(f"{API}/billing/workspace/{workspace['id']}/billable", headers=dev_headers).status_code == 404


def test_mark_billed_removes_tickets_from_billable_list(client) -> None:
    owner, headers, dev, _, workspace, tickets = _billing_setup(client)
    ticket_ids = [t["id"] for t in tickets]

    response = client.patch(
        f"{API}/billing/tickets/status",
        json={"ticket_ids": ticket_ids, "payment_status": "billed"},
        headers=headers,
    )
    assert response.status_code == 200
    assert {t["payment_status"] for t in response.json()} == {"billed"}

    listed = client.get(f"{API}/billing/workspace/{workspace['id']}/user/{dev['id']}", headers=headers).json()
    assert listed == []

    history = client.get(f"{API}/tickets/{ticket_ids[0]}/history", headers=headers).json()
    assert history[-1]["action"] == "payment_status_changed"
    assert history[-1]["new_value"] == "billed"


def test_payment_status_update_rules(client) -> None:
    owner, headers, dev, dev_headers, workspace, tickets = _billing_setup(client)
    ticket_ids = [t["id"] for t in tickets]

    invalid = client.patch(
        f"{API}/billing/tickets/status",
        json={"ticket_ids": ticket_ids, "payment_status": "not-applicable"},
        headers=headers,
    )
    assert invalid.status_code == 400
    assert invalid.json() == {"message": "Invalid payment status"}

    missing = client.patch(
        f"{API}/billing/tickets/status",
        json={"ticket_ids": [9999], "payment_status": "billed"},
        headers=headers,
    )
    assert missing.status_code == 404

    foreign = client.patch(
        f"{API}/billing/tickets/status",
        json={"ticket_ids": ticket_ids, "payment_status": "billed"},
        headers=dev_headers,
    )
    assert foreign.status_code == 403


def test_manual_item_crud(client) -> None:
    owner, headers, dev, _, workspace, _ = _billing_setup(client)
    stranger, _ = signup(client, "stranger@example.com")

    bad_user = client.post(
        f"{API}/billing/workspace/{workspace['id']}/manual-item",
        json={"title": "Support", "hours": 2, "user_id": stranger["id"]},
        headers=headers,
    )
    assert bad_user.status_code == 400

    item = _manual_item(client, headers, workspace["id"])
    updated = client.put(f"{API}/billing/manual-item/{item['id']}", json={"hours": 2.5}, headers=headers)
    assert updated.json()["hours"] == 2.5

    assert client.delete(f"{API}/billing/manual-item/{item['id']}", headers=headers).status_code == 200
    items = client.get(f"{API}/billing/workspace/{workspace['id']}/manual-items", headers=headers).json()
    assert items == []
