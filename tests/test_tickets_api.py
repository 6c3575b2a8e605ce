from __future__ import annotations

from conftest import API, add_member, complete_ticket, create_ticket, create_workspace, signup


def _setup(client):
    owner, owner_headers = signup(client, "owner@example.com", "Olga")
    member, member_headers = signup(client, "dev@example.com", "Dev")
    workspace = create_workspace(client, owner_headers)
    add_member(client, owner_headers, workspace["id"], member["id"])
    return owner, owner_headers, member, member_headers, workspace


def _history(client, headers, ticket_id):
    response = client.get(f"{API}/tickets/{ticket_id}/history", headers=headers)
    assert response.status_code == 200
    return response.json()


def test_create_story_writes_created_entry(client) -> None:
    owner, headers, member, _, workspace = _setup(client)
    ticket = create_ticket(client, headers, workspace["id"], member["id"])

    assert ticket["kind"] == "story"
    assert ticket["status"] == "todo"
    assert ticket["payment_status"] == "not-applicable"
    history = _history(client, headers, ticket["id"])
    assert [h["action"] for h in history] == ["created"]
    assert history[0]["description"] == 'Created ticket "Landing page"'


def test_assignee_must_be_member(client) -> None:
    owner, headers, _, _, workspace = _setup(client)
    stranger, _ = signup(client, "stranger@example.com")

    response = client.post(
        f"{API}/tickets",
        json={"title": "X", "workspace_id": workspace["id"], "assignee_id": stranger["id"]},
        headers=headers,
    )
    assert response.status_code == 400
    assert response.json() == {"message": "Assignee must be a member of the workspace"}


def test_subtask_structure_is_enforced(client) -> None:
    owner, headers, _, _, workspace = _setup(client)

    orphan = client.post(
        f"{API}/tickets",
        json={"title": "X", "workspace_id": workspace["id"], "assignee_id": owner["id"], "kind": "subtask"},
        headers=headers,
    )
    assert orphan.status_code == 400
    assert orphan.json() == {"message": "Subtask must have a parent ticket"}

    story = create_ticket(client, headers, workspace["id"], owner["id"])
    subtask = create_ticket(
        client, headers, workspace["id"], owner["id"],
        title="Copy", kind="subtask", parent_ticket_id=story["id"],
    )
    nested = client.post(
        f"{API}/tickets",
        json={
            "title": "Nested",
            "workspace_id": workspace["id"],
            "assignee_id": owner["id"],
            "kind": "subtask",
            "parent_ticket_id": subtask["id"],
        },
        headers=headers,
    )
    assert nested.status_code == 400
    assert nested.json() == {"message": "Cannot create subtask inside a subtask"}

    subtasks = client.get(f"{API}/tickets/{story['id']}/subtasks", headers=headers).json()
    assert [s["id"] for s in subtasks] == [subtask["id"]]


def test_completion_requires_hours(client) -> None:
    owner, headers, member, member_headers, workspace = _setup(client)
    ticket = create_ticket(client, headers, workspace["id"], member["id"])

    response = client.patch(
        f"{API}/tickets/{ticket['id']}/status",
        json={"status": "completed"},
        headers=member_headers,
    )
    assert response.status_code == 400
    assert response.json() == {
        "message": "Cannot mark as completed without hours worked. Please enter hours worked first."
    }

    client.patch(f"{API}/tickets/{ticket['id']}/hours", json={"hours_worked": 5}, headers=member_headers)
    response = client.patch(
        f"{API}/tickets/{ticket['id']}/status",
        json={"status": "completed"},
        headers=member_headers,
    )
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "completed"
    assert body["payment_status"] == "pending-pay"
    assert body["completed_at"] is not None


def test_repeated_status_writes_no_history(client) -> None:
    owner, headers, _, _, workspace = _setup(client)
    ticket = create_ticket(client, headers, workspace["id"], owner["id"])

    for status in ("in-progress", "in-progress", "todo"):
        client.patch(f"{API}/tickets/{ticket['id']}/status", json={"status": status}, headers=headers)

    actions = [h["action"] for h in _history(client, headers, ticket["id"])]
    assert actions == ["created", "status_changed", "status_changed"]


def test_completion_date_is_kept_after_reopening(client) -> None:
    owner, headers, _, _, workspace = _setup(client)
    ticket = create_ticket(client, headers, workspace["id"], owner["id"])
    first = complete_ticket(client, headers, ticket["id"], 2)

    client.patch(f"{API}/tickets/{ticket['id']}/status", json={"status": "in-progress"}, headers=headers)
    again = client.patch(f"{API}/tickets/{ticket['id']}/status", json={"status": "completed"}, headers=headers)

    assert again.json()["completed_at"] == first["completed_at"]


def test_kind_cannot_change(client) -> None:
    owner, headers, _, _, workspace = _setup(client)
    ticket = create_ticket(client, headers, workspace["id"], owner["id"])

    response = client.put(f"{API}/tickets/{ticket['id']}", json={"kind": "subtask"}, headers=headers)
    assert response.status_code == 400
    assert response.json() == {"message": "Cannot change ticket type after creation"}


def test_subtask_hours_roll_up_to_story(client) -> None:
    owner, headers, _, _, workspace = _setup(client)
    story = create_ticket(client, headers, workspace["id"], owner["id"])
    first = create_ticket(
        client, headers, workspace["id"], owner["id"],
        title="Copy", kind="subtask", parent_ticket_id=story["id"],
    )
    second = create_ticket(
        client, headers, workspace["id"], owner["id"],
        title="Images", kind="subtask", parent_ticket_id=story["id"],
    )

    client.patch(f"{API}/tickets/{first['id']}/hours", json={"hours_worked": 2}, headers=headers)
    client.patch(f"{API}/tickets/{second['id']}/hours", json={"hours_worked": 1.5}, headers=headers)

    parent = client.get(f"{API}/tickets/{story['id']}", headers=headers).json()
    assert parent["hours_worked"] == 3.5

    client.delete(f"{API}/tickets/{second['id']}", headers=headers)
    parent = client.get(f"{API}/tickets/{story['id']}", headers=headers).json()
    assert parent["hours_worked"] == 2


def test_only_owner_deletes_and_story_takes_subtasks(client) -> None:
    owner, headers, member, member_headers, workspace = _setup(client)
    story = create_ticket(client, headers, workspace["id"], member["id"])
    subtask = create_ticket(
        client, headers, workspace["id"], member["id"],
        title="Copy", kind="subtask", parent_ticket_id=story["id"],
    )
    client.post(f"{API}/comments", json={"ticket_id": subtask["id"], "content": "On it"}, headers=member_headers)

    denied = client.delete(f"{API}/tickets/{story['id']}", headers=member_headers)
    assert denied.status_code == 403
    assert denied.json() == {"message": "Only workspace owner can delete tickets"}

    response = client.delete(f"{API}/tickets/{story['id']}", headers=headers)
    assert response.status_code == 200
    assert sorted(response.json()["deleted_ticket_ids"]) == sorted([story["id"], subtask["id"]])
    assert client.get(f"{API}/tickets/{subtask['id']}", headers=headers).status_code == 404


def test_non_member_cannot_read_ticket(client) -> None:
    owner, headers, _, _, workspace = _setup(client)
    _, stranger_headers = signup(client, "stranger@example.com")
    ticket = create_ticket(client, headers, workspace["id"], owner["id"])

    response = client.get(f"{API}/tickets/{ticket['id']}", headers=stranger_headers)
    assert response.status_code == 403
    assert client.get(f"{API}/tickets/999", headers=headers).status_code == 404


def test_period_and_backlog_filters(client) -> None:
    owner, headers, _, _, workspace = _setup(client)
    october = create_ticket(client, headers, workspace["id"], owner["id"], go_live_date="2026-10-31T23:00:00")
    november = create_ticket(client, headers, workspace["id"], owner["id"], go_live_date="2026-11-01T00:00:00")
    backlog = create_ticket(client, headers, workspace["id"], owner["id"])

    in_october = client.get(
        f"{API}/tickets/workspace/{workspace['id']}",
        params={"period_date": "2026-10-14T00:00:00"},
        headers=headers,
    ).json()
    assert [t["id"] for t in in_october] == [october["id"]]

    in_q4 = client.get(
        f"{API}/tickets/workspace/{workspace['id']}",
        params={"period_date": "2026-10-14T00:00:00", "period_type": "quarterly"},
        headers=headers,
    ).json()
    assert {t["id"] for t in in_q4} == {october["id"], november["id"]}

    only_backlog = client.get(
        f"{API}/tickets/workspace/{workspace['id']}",
        params={"backlog": True},
        headers=headers,
    ).json()
    assert [t["id"] for t in only_backlog] == [backlog["id"]]


def test_comments_and_checklist(client) -> None:
    owner, headers, member, member_headers, workspace = _setup(client)
    ticket = create_ticket(client, headers, workspace["id"], member["id"])

    comment = client.post(
        f"{API}/comments",
        json={"ticket_id": ticket["id"], "content": "Started"},
        headers=member_headers,
    ).json()
    assert client.delete(f"{API}/comments/{comment['id']}", headers=headers).status_code == 403
    assert client.delete(f"{API}/comments/{comment['id']}", headers=member_headers).status_code == 200

    item = client.post(
        f"{API}/checklist",
        json={"ticket_id": ticket["id"], "title": "Check copy"},
        headers=member_headers,
    )
    assert item.status_code == 201
    checked = client.put(f"{API}/checklist/{item.json()['id']}", json={"completed": True}, headers=member_headers)
    assert checked.json()["completed_at"] is not None
    unchecked = client.put(f"{API}/checklist/{item.json()['id']}", json={"completed": False}, headers=member_headers)
    assert unchecked.json()["completed_at"] is None

    descriptions = [h["description"] for h in _history(client, headers, ticket["id"])]
    assert descriptions[1:] == ["Added a comment", 'Added checklist item: "Check copy"']


def test_go_live_date_with_offset_is_filed_by_its_utc_instant(client) -> None:
    owner, headers, _, _, workspace = _setup(client)
    # 2026-11-01 03:00 UTC
    ticket = create_ticket(
        client, headers, workspace["id"], owner["id"], go_live_date="2026-10-31T22:00:00-05:00",
    )
    assert ticket["go_live_date"].startswith("2026-11-01T03:00:00")

    def listed(period_date: str):
        response = client.get(
            f"{API}/tickets/workspace/{workspace['id']}",
            params={"period_date": period_date},
            headers=headers,
        )
        assert response.status_code == 200
        return [t["id"] for t in response.json()]

    assert listed("2026-11-15T00:00:00") == [ticket["id"]]
    assert listed("2026-10-15T00:00:00") == []

    moved = client.put(
        f"{API}/tickets/{ticket['id']}",
        json={"go_live_date": "2026-11-01T01:00:00+02:00"},
        headers=headers,
    )
    assert moved.status_code == 200
    assert moved.json()["go_live_date"].startswith("2026-10-31T23:00:00")
    assert listed("2026-10-15T00:00:00") == [ticket["id"]]
