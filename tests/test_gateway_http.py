import asyncio
import httpx
import pytest
from cms.core.errors import PersistenceError
from cms.main import app
from cms.tree.dropzone import DragMetrics, DropZone, ZoneKind
from cms.tree.editor import OutcomeStatus, PageTreeEditor
from cms.tree.engine import OrderUpdate
from cms.tree.gateway import HttpPersistenceGateway
from cms.tree.store import PageStore
from test_pages import create_page, positions


def run(coro):
    return asyncio.run(coro)

def make_gateway(token=None):
    """Passerelle branchée directement sur l'app ASGI (pas de réseau)"""
    client = httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver")
    return HttpPersistenceGateway(base_url="http://testserver", token=token, client=client)


@pytest.fixture
def tree(client, auth_headers):
    ids = {}
    for title in ("A", "B", "C"):
        ids[title] = create_page(client, auth_headers, title)
    ids["D"] = create_page(client, auth_headers, "D", parent_id=ids["A"])
    ids["E"] = create_page(client, auth_headers, "E", parent_id=ids["A"])
    return ids


# ========== PASSERELLE SEULE ==========
def test_fetch_pages(auth_token, tree):
    async def scenario():
        async with make_gateway(auth_token) as gateway:
            return await gateway.fetch_pages()

    records = run(scenario())
    store = PageStore(records)
    assert [p.id for p in store.siblings(None)] == [tree["A"], tree["B"], tree["C"]]
    assert [p.id for p in store.children(tree["A"])] == [tree["D"], tree["E"]]

def test_reorder_call(client, auth_headers, auth_token, tree):
    async def scenario():
        async with make_gateway(auth_token) as gateway:
            await gateway.reorder([
                OrderUpdate(tree["C"], 0), OrderUpdate(tree["A"], 1), OrderUpdate(tree["B"], 2)
            ])

    run(scenario())
    pos = positions(client, auth_headers)
    assert [pos[tree[t]][1] for t in ("C", "A", "B")] == [0, 1, 2]

def test_missing_token_raises_persistence_error(tree):
    async def scenario():
        async with make_gateway() as gateway:
            await gateway.fetch_pages()

    with pytest.raises(PersistenceError) as exc:
        run(scenario())
    assert exc.value.status_code == 401

def test_server_rejection_raises_persistence_error(auth_token, tree):
    async def scenario():
        async with make_gateway(auth_token) as gateway:
            await gateway.move(tree["A"], tree["D"], 0)

    with pytest.raises(PersistenceError) as exc:
        run(scenario())
    assert exc.value.status_code == 400
    assert "cannot move under its descendant" in str(exc.value)

def test_network_error_raises_persistence_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    async def scenario():
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://cms.local")
        async with HttpPersistenceGateway(token="t", client=client) as gateway:
            await gateway.reorder([OrderUpdate(1, 0)])

    with pytest.raises(PersistenceError) as exc:
        run(scenario())
    assert exc.value.status_code is None

def test_headers_carry_bearer_token():
    seen = {}

    def handler(request):
        seen["auth"] = request.headers.get("authorization")
        seen["path"] = request.url.path
        return httpx.Response(204)

    async def scenario():
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://cms.local")
        async with HttpPersistenceGateway(token="abc", client=client) as gateway:
            return await gateway.delete_page(7, with_descendants=True)

    assert run(scenario()) is None
    assert seen == {"auth": "Bearer abc", "path": "/pages/7"}


# ========== ÉDITEUR DE BOUT EN BOUT ==========
def test_editor_reorder_end_to_end(client, auth_headers, auth_token, tree):
    """Scénario 1 jusqu'en base : A déposé après B"""
    async def scenario():
        async with make_gateway(auth_token) as gateway:
            editor = PageTreeEditor(PageStore(), gateway)
            await editor.refresh()
            zone = DropZone(ZoneKind.BETWEEN, None, 2, tree["B"])
            return await editor.drop(tree["A"], zone, pointer_x=0, metrics=DragMetrics(300))

    outcome = run(scenario())
    assert outcome.status == OutcomeStatus.CONFIRMED
    pos = positions(client, auth_headers)
    assert [pos[tree[t]][1] for t in ("B", "A", "C")] == [0, 1, 2]

def test_editor_reparent_end_to_end(client, auth_headers, auth_token, tree):
    """Scénario 2 jusqu'en base : D sur la zone enfant de B"""
    async def scenario():
        async with make_gateway(auth_token) as gateway:
            editor = PageTreeEditor(PageStore(), gateway)
            await editor.refresh()
            zone = DropZone(ZoneKind.CHILD, None, 1, tree["B"])
            outcome = await editor.drop(tree["D"], zone, pointer_x=200, metrics=DragMetrics(300))
            return outcome, editor.store.structure()

    outcome, local = run(scenario())
    assert outcome.status == OutcomeStatus.CONFIRMED
    server = positions(client, auth_headers)
    assert server == local

def test_editor_rolls_back_on_server_error(client, auth_headers, auth_token, tree):
    """Store périmé : C supprimée ailleurs, le lot est refusé et annulé localement"""
    async def scenario():
        async with make_gateway(auth_token) as gateway:
            editor = PageTreeEditor(PageStore(), gateway)
            await editor.refresh()
            # suppression faite par un autre opérateur
            await gateway.client.delete(f"/pages/{tree['C']}", headers=auth_headers)
            before = editor.store.structure()
            outcome = await editor.move(tree["A"], None, 3)
            return outcome, before, editor.store.structure()

    outcome, before, after = run(scenario())
    assert outcome.status == OutcomeStatus.ROLLED_BACK
    assert outcome.error.status_code == 404
    assert after == before
    pos = positions(client, auth_headers)
    assert pos[tree["A"]] == (None, 0)

def test_editor_delete_refetches(client, auth_headers, auth_token, tree):
    async def scenario():
        async with make_gateway(auth_token) as gateway:
            editor = PageTreeEditor(PageStore(), gateway)
            await editor.refresh()
            await editor.delete_page(tree["A"])
            return editor.store

    store = run(scenario())
    assert tree["A"] not in store
    assert [p.id for p in store.siblings(None)] == [tree["B"], tree["C"], tree["D"], tree["E"]]
    store.check_invariants()
