# tests/test_lists_api.py
# PURPOSE: custom lists: CRUD, unique names, renames that follow tasks, sample project.

from conftest import auth_headers

BASE = "/api/v1/lists/"
TASKS = "/api/v1/tasks/"


def _create_list(client, name: str, **fields):
    r = client.post(BASE, json={"name": name, **fields})
    assert r.status_code == 201
    return r.json()


def test_create_and_get_list(client):
    created = _create_list(client, "Groceries", color="#10b981", emoji="🛒")
    assert created["color"] == "#10b981"
    assert created["emoji"] == "🛒"

    r = client.get(f"{BASE}{created['id']}")
    assert r.status_code == 200
    assert r.json()["name"] == "Groceries"


def test_defaults(client):
    created = _create_list(client, "Plain")
    assert created["color"] == "#3B82F6"
    assert created["emoji"] == "📝"


def test_invalid_color_rejected(client):
    r = client.post(BASE, json={"name": "Bad", "color": "blue"})
    assert r.status_code == 422


def test_duplicate_name_conflict(client):
    _create_list(client, "Work")
    r = client.post(BASE, json={"name": "Work"})
    assert r.status_code == 409
    assert r.json()["error"] == "A list with this name already exists"


def test_rename_updates_tasks(client):
    lst = _create_list(client, "Groceries")
    task = client.post(TASKS, json={"title": "Eggs", "custom_list": "Groceries"}).json()

    r = client.patch(f"{BASE}{lst['id']}", json={"name": "Shopping"})
    assert r.status_code == 200
    assert r.json()["name"] == "Shopping"

    assert client.get(f"{TASKS}{task['id']}").json()["custom_list"] == "Shopping"
    counts = client.get(f"{TASKS}stats/counts").json()
    assert counts["Shopping"] == 1
    assert "Groceries" not in counts


def test_rename_onto_existing_name_conflicts(client):
    _create_list(client, "Home")
    other = _create_list(client, "Office")
    r = client.patch(f"{BASE}{other['id']}", json={"name": "Home"})
    assert r.status_code == 409
    # renaming to its own name is a no-op, not a conflict
    r2 = client.patch(f"{BASE}{other['id']}", json={"name": "Office", "color": "#000"})
    assert r2.status_code == 200
    assert r2.json()["color"] == "#000"


def test_delete_list_leaves_tasks(client):
    lst = _create_list(client, "Temporary")
    task = client.post(TASKS, json={"title": "Stays", "custom_list": "Temporary"}).json()

    r = client.delete(f"{BASE}{lst['id']}")
    assert r.status_code == 204
    assert client.get(f"{BASE}{lst['id']}").status_code == 404
    assert client.get(f"{TASKS}{task['id']}").json()["custom_list"] == "Temporary"


def test_lists_are_per_owner(client, make_user):
    _create_list(client, "Mine")
    other = auth_headers(make_user("other@example.com", "other"))
    assert client.get(BASE, headers=other).json() == []
    # the same name is free for another owner
    assert client.post(BASE, json={"name": "Mine"}, headers=other).status_code == 201


def test_sample_project(client):
    r = client.post(f"{BASE}sample-project")
    assert r.status_code == 201
    project = r.json()

    tasks = client.get(TASKS, params={"custom_list": project["name"]})
    assert tasks.headers["X-Total-Count"] == "4"

    assert client.post(f"{BASE}sample-project").status_code == 409
