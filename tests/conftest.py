import sys
from pathlib import Path

# Ajoute la racine du projet au PYTHONPATH EN PREMIER
sys.path.insert(0, str(Path(__file__).parent.parent))

import uuid
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

# Créer engine SQLite pour tests AVANT d'importer app
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///./test.db"
test_engine = create_engine(
    SQLALCHEMY_TEST_DATABASE_URL,
    connect_args={"check_same_thread": False}
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)

# PATCH: remplacer le engine et SessionLocal du core.database AVANT d'importer app
import cms.core.database
cms.core.database.engine = test_engine
cms.core.database.SessionLocal = TestingSessionLocal

# Maintenant importer app (qui utilisera notre engine SQLite)
from cms.core.database import Base, get_db
from cms.core.errors import PersistenceError
from cms.core.security import create_access_token
from cms.main import app
from cms.models.user import User
from cms.tree.engine import plan_position
from cms.tree.gateway import PersistenceGateway
from cms.tree.hierarchy import collect_descendants
from cms.tree.store import PageRecord, PageStore

def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()

@pytest.fixture(autouse=True)
def setup_teardown():
    """Crée et nettoie la DB avant/après chaque test"""
    Base.metadata.drop_all(bind=test_engine)
    Base.metadata.create_all(bind=test_engine)
    yield
    Base.metadata.drop_all(bind=test_engine)

# Override la dépendance
app.dependency_overrides[get_db] = override_get_db


@pytest.fixture
def client():
    """Client de test FastAPI"""
    from fastapi.testclient import TestClient
    return TestClient(app)


@pytest.fixture
def db():
    """Session DB pour les tests"""
    db = TestingSessionLocal()
    yield db
    db.close()


def create_user(role="editor", password="password123"):
    """Crée un user directement en BD et retourne (id, email)"""
    unique_id = str(uuid.uuid4())[:8]
    db = TestingSessionLocal()
    user = User(email=f"user{unique_id}@test.com", username=f"user{unique_id}", role=role)
    user.set_password(password)
    db.add(user)
    db.commit()
    db.refresh(user)
    result = (user.id, user.email)
    db.close()
    return result


@pytest.fixture
def auth_token():
    """Token JWT d'un editor"""
    user_id, email = create_user("editor")
    return create_access_token(user_id, email, "editor")


@pytest.fixture
def auth_headers(auth_token):
    return {"Authorization": f"Bearer {auth_token}"}


# ============ ARBORESCENCE EN MÉMOIRE ============

def make_store():
    """
    A(0)            B(1)     C(2)
      D(0)  E(1)
        F(0)
    """
    return PageStore([
        PageRecord("A", "Accueil", "accueil", None, 0),
        PageRecord("B", "Activités", "activites", None, 1),
        PageRecord("C", "Contact", "contact", None, 2),
        PageRecord("D", "Équipe", "equipe", "A", 0),
        PageRecord("E", "Histoire", "histoire", "A", 1),
        PageRecord("F", "Animateurs", "animateurs", "D", 0),
    ])


@pytest.fixture
def store():
    return make_store()


class FakeGateway(PersistenceGateway):
    """Passerelle en mémoire : enregistre les appels, peut échouer à la demande"""

    def __init__(self, records=None, fail=False):
        self.server = PageStore(records or [])
        self.fail = fail
        self.calls = []

    def _maybe_fail(self, name):
        if self.fail:
            raise PersistenceError(f"{name} failed", status_code=500)

    async def reorder(self, updates):
        self.calls.append(("reorder", [(u.page_id, u.order_index) for u in updates]))
        self._maybe_fail("reorder")
        for u in updates:
            self.server.get(u.page_id).order_index = u.order_index

    async def move(self, page_id, new_parent_id, new_order_index):
        self.calls.append(("move", page_id, new_parent_id, new_order_index))
        self._maybe_fail("move")
        # même calcul que page_service.apply_move
        self.server.apply(plan_position(self.server, page_id, new_parent_id, new_order_index))

    async def fetch_pages(self):
        self.calls.append(("fetch_pages",))
        return self.server.snapshot().records

    async def toggle_active(self, page_id):
        self.calls.append(("toggle_active", page_id))
        self._maybe_fail("toggle_active")
        page = self.server.get(page_id)
        page.is_active = not page.is_active

    async def delete_page(self, page_id, with_descendants=False):
        """Comme page_service.delete_page : enfants promus en fin de racine, groupes recompactés"""
        self.calls.append(("delete_page", page_id, with_descendants))
        self._maybe_fail("delete_page")
        page = self.server.get(page_id)
        removed = {page_id}
        promoted = []
        if with_descendants:
            removed |= collect_descendants(page_id, self.server)
        else:
            promoted = self.server.children(page_id)

        groups = [[p for p in self.server.siblings(page.parent_id) if p.id not in removed]]
        if promoted:
            roots = [p for p in self.server.siblings(None) if p.id not in removed]
            groups = groups[1:] if page.parent_id is None else groups
            groups.append(roots + promoted)
        for child in promoted:
            child.parent_id = None
        for group in groups:
            for position, record in enumerate(group):
                record.order_index = position
        self.server.replace_all(p for p in self.server if p.id not in removed)


@pytest.fixture
def gateway():
    return FakeGateway(make_store().pages())
