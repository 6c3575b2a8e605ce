from __future__ import annotations

from conftest import API, add_member, create_ticket, create_workspace, signup


def test_owner_is_first_member(client) -> None:
    owner, headers = signup(client, "owner@example.com", "Olga")
    workspace = create_workspace(client, headers)

    assert workspace["owner_id"] == owner["id"]
    assert workspace["period_type"] == "monthly"
    assert workspace["currency"] == "USD"
    assert [m["id"] for m in workspace["members"]] == [owner["id"]]


def test_workspace_is_hidden_from_non_members(client) -> None:
    _, owner_headers = signup(client, "owner@example.com")
    _, other_headers = signup(client, "other@example.com")
    workspace = create_workspace(client, owner_headers)

    response = client.get(f"{API}/workspaces/{workspace['id']}", headers=other_headers)
    assert response.status_code == 404
    assert response.json() == {"message": "Workspace not found or access denied"}
    assert client.get(f"{API}/workspaces", headers=other_headers).json() == []


def test_members_see_workspace_but_cannot_change_it(client) -> None:
    _, owner_headers = signup(client, "owner@example.com")
    member, member_headers = signup(client, "member@example.com")
    workspace = create_workspace(client, owner_headers)
    add_member(client, owner_headers, workspace["id"], member["id"])

    listed = client.get(f"{API}/workspaces", headers=member_headers).json()
    assert [w["id"] for w in listed] == [workspace["id"]]

    response = client.put(
        f"{API}/workspaces/{workspace['id']}",
        json={"name": "Hijacked"},
        headers=member_headers,
    )
    assert response.status_code == 404


def test_update_settings(client) -> None:
    _, headers = signup(client, "owner@example.com")
    workspace = create_workspace(client, headers)

    response = client.put(
        f"{API}/workspaces/{workspace['id']}",
        json={"settings": {"period_type": "weekly", "currency": "INR"}},
        headers=headers,
    )
    assert response.status_code == 200
    assert response.json()["period_type"] == "weekly"
    assert response.json()["currency"] == "INR"

    bad = client.put(
        f"{API}/workspaces/{workspace['id']}",
        json={"settings": {"currency": "EUR"}},
        headers=headers,
    )
    assert bad.status_code == 400
    assert bad.json() == {"message": "Invalid currency. Must be USD or INR"}


def test_owner_cannot_be_removed(client) -> None:
    owner, headers = signup(client, "owner@example.com")
    workspace = create_workspace(client, headers)

    response = client.delete(f"{API}/workspaces/{workspace['id']}/members/{owner['id']}", headers=headers)
    assert response.status_code == 400


def test_delete_workspace_removes_tickets(client) -> None:
    owner, headers = signup(client, "owner@example.com")
    workspace = create_workspace(client, headers)
    story = create_ticket(client, headers, workspace["id"], owner["id"])
    create_ticket(
        client, headers, workspace["id"], owner["id"],
        title="Copy", kind="subtask", parent_ticket_id=story["id"],
    )

    response = client.delete(f"{API}/workspaces/{workspace['id']}", headers=headers)
    assert response.status_code == 200
    assert response.json() == {"message": "Workspace deleted"}
    assert client.get(f"{API}/tickets/{story['id']}", headers=headers).status_code == 404


def test_periods_navigation(client) -> None:
    owner, headers = signup(client, "owner@example.com")
    workspace = create_workspace(client, headers)
    create_ticket(client, headers, workspace["id"], owner["id"], go_live_date="2025-03-10T00:00:00")
    create_ticket(client, headers, workspace["id"], owner["id"], go_live_date="2026-10-20T00:00:00")

    response = client.get(
        f"{API}/workspaces/{workspace['id']}/periods",
        params={"date": "2026-10-14T12:00:00"},
        headers=headers,
    )
    assert response.status_code == 200
    payload = response.json()
    assert payload["current"]["label"] == "October 2026"
    assert payload["years"] == [2026, 2025]
    assert len(payload["months"]) == 12
