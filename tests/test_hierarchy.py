import pytest
from cms.core.errors import CycleDetected, InvariantViolation, PageNotFound
from cms.tree.hierarchy import (
    ancestors, build_full_path, collect_descendants, is_descendant, resolve_full_path
)
from cms.tree.store import PageRecord, PageStore


# ============ PATH RESOLVER ============

def test_full_path_root(store):
    assert build_full_path("B", store) == "/activites"

def test_full_path_nested(store):
    assert build_full_path("F", store) == "/accueil/equipe/animateurs"

def test_ancestors_order(store):
    assert ancestors("F", store) == ["D", "A"]
    assert ancestors("A", store) == []

def test_full_path_unknown_page(store):
    with pytest.raises(PageNotFound):
        build_full_path("ZZZ", store)

def test_full_path_cycle_is_detected():
    """Données corrompues X -> Y -> X : erreur au lieu d'une boucle infinie"""
    corrupted = PageStore([
        PageRecord("X", "X", "x", "Y", 0),
        PageRecord("Y", "Y", "y", "X", 0),
    ])
    with pytest.raises(CycleDetected) as exc:
        build_full_path("X", corrupted)
    assert exc.value.page_id == "X"

def test_full_path_self_parent_cycle():
    corrupted = PageStore([PageRecord("X", "X", "x", "X", 0)])
    with pytest.raises(CycleDetected):
        build_full_path("X", corrupted)

def test_full_path_missing_parent_stops():
    orphan = PageStore([PageRecord("X", "X", "x", "gone", 0)])
    assert build_full_path("X", orphan) == "/x"

def test_resolve_full_path(store):
    assert resolve_full_path("/accueil/equipe/animateurs", store).id == "F"
    assert resolve_full_path("accueil/equipe/", store).id == "D"

def test_resolve_full_path_rejects_wrong_parent(store):
    # 'equipe' existe, mais pas sous 'activites'
    assert resolve_full_path("/activites/equipe", store) is None
    assert resolve_full_path("/equipe", store) is None
    assert resolve_full_path("/", store) is None

def test_resolve_full_path_active_only(store):
    store.get("D").is_active = False
    assert resolve_full_path("/accueil/equipe/animateurs", store, active_only=True) is None
    assert resolve_full_path("/accueil/equipe/animateurs", store).id == "F"


# ============ DESCENDANT COLLECTOR ============

def test_collect_descendants(store):
    assert collect_descendants("A", store) == {"D", "E", "F"}
    assert collect_descendants("D", store) == {"F"}
    assert collect_descendants("C", store) == set()

def test_is_descendant(store):
    assert is_descendant("F", "A", store)
    assert not is_descendant("A", "F", store)
    assert not is_descendant("B", "A", store)

def test_collect_descendants_terminates_on_cycle():
    corrupted = PageStore([
        PageRecord("X", "X", "x", "Y", 0),
        PageRecord("Y", "Y", "y", "X", 0),
    ])
    assert collect_descendants("X", corrupted) == {"Y"}


# ============ PAGE STORE ============

def test_siblings_sorted(store):
    store.get("A").order_index = 5
    assert [p.id for p in store.siblings(None)] == ["B", "C", "A"]

def test_snapshot_is_a_copy(store):
    snapshot = store.snapshot()
    store.get("A").parent_id = "C"
    store.get("A").order_index = 9
    assert snapshot.structure()["A"] == (None, 0)

    store.restore(snapshot)
    assert store.get("A").parent_id is None
    assert store.structure() == snapshot.structure()

def test_restore_twice_from_same_snapshot(store):
    snapshot = store.snapshot()
    store.restore(snapshot)
    store.get("B").order_index = 7
    store.restore(snapshot)
    assert store.get("B").order_index == 1

def test_check_invariants_detects_gap(store):
    store.check_invariants()
    store.get("C").order_index = 3
    with pytest.raises(InvariantViolation):
        store.check_invariants()

def test_check_invariants_detects_duplicate(store):
    store.get("E").order_index = 0
    with pytest.raises(InvariantViolation):
        store.check_invariants()

def test_record_from_dict():
    record = PageRecord.from_dict({"id": 3, "title": "T", "slug": "t", "parent_id": None, "order_index": 2})
    assert record.order_index == 2
    assert record.is_active is True


def deep_chain(depth):
    """p0 <- p1 <- ... : une page par niveau"""
    return PageStore([
        PageRecord(f"p{i}", f"P{i}", f"p{i}", f"p{i - 1}" if i else None, 0)
        for i in range(depth)
    ])

def test_deep_chain_beyond_recursion_limit():
    store = deep_chain(1500)
    assert len(collect_descendants("p0", store)) == 1499
    assert is_descendant("p1499", "p0", store)
    assert build_full_path("p1499", store).count("/") == 1500
