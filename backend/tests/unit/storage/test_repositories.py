"""
Repository contract tests, run against both storage modes

MongoDB is replaced by mongomock-motor so the motor code paths run
without a server.
"""
import pytest
from bson import ObjectId
from mongomock_motor import AsyncMongoMockClient

from app.core.exceptions import DuplicateEmailError
from app.models.analysis import ChartConfig, ChartType
from app.models.user import UserRole
from app.storage import MemoryStorage, MongoStorage

ROWS = [{"Region": "North", "Sales": 120}, {"Region": "South", "Sales": 80}]


async def make_storage(mode: str):
    if mode == "memory":
        return MemoryStorage()
    storage = MongoStorage(AsyncMongoMockClient(), "excel_analytics_test")
    await storage.ensure_indexes()
    return storage


@pytest.fixture(params=["memory", "mongo"])
async def store(request):
    return await make_storage(request.param)


def missing_id() -> str:
    """An id neither store knows, valid as an ObjectId"""
    return str(ObjectId())


async def add_user(store, email: str, role: UserRole = UserRole.USER):
    return await store.users.create(name="Test User", email=email, hashed_password="hash", role=role)


async def add_analysis(store, user_id: str, name: str = "book.xlsx"):
    return await store.analyses.create(
        user_id=user_id,
        filename=f"1700000000000_{name}",
        original_name=name,
        data=[dict(row) for row in ROWS],
        columns=["Region", "Sales"],
    )


class TestUserRepository:

    @pytest.mark.asyncio
    async def test_create_lowercases_email(self, store):
        user = await add_user(store, "Ada@Example.com")

        assert isinstance(user.id, str)
        assert user.email == "ada@example.com"
        assert (await store.users.get_by_email("ada@example.com")).id == user.id

    @pytest.mark.asyncio
    async def test_duplicate_email(self, store):
        await add_user(store, "ada@example.com")

        with pytest.raises(DuplicateEmailError):
            await add_user(store, "ADA@example.com")

    @pytest.mark.asyncio
    async def test_unknown_and_malformed_ids(self, store):
        for user_id in (missing_id(), "not-an-id"):
            assert await store.users.get(user_id) is None
            assert await store.users.update_role(user_id, UserRole.ADMIN) is None
            assert await store.users.delete(user_id) is None

    @pytest.mark.asyncio
    async def test_list_newest_first(self, store):
        first = await add_user(store, "a@example.com")
        second = await add_user(store, "b@example.com")

        assert [u.id for u in await store.users.list()] == [second.id, first.id]

    @pytest.mark.asyncio
    async def test_roles(self, store):
        user = await add_user(store, "a@example.com")
        await add_user(store, "b@example.com")
        await add_user(store, "c@example.com", role=UserRole.ADMIN)

        promoted = await store.users.update_role(user.id, UserRole.ADMIN)

        assert promoted.role == UserRole.ADMIN
        assert await store.users.count() == 3
        assert await store.users.count_by_role() == {"admin": 2, "user": 1}

    @pytest.mark.asyncio
    async def test_upload_history(self, store):
        user = await add_user(store, "a@example.com")

        await store.users.add_upload(user.id, "x1")
        await store.users.add_upload(user.id, "x2")
        await store.users.remove_upload(user.id, "x1")

        assert (await store.users.get(user.id)).upload_history == ["x2"]

    @pytest.mark.asyncio
    async def test_delete_returns_user(self, store):
        user = await add_user(store, "a@example.com")

        deleted = await store.users.delete(user.id)

        assert deleted.email == "a@example.com"
        assert await store.users.get(user.id) is None


class TestAnalysisRepository:

    @pytest.mark.asyncio
    async def test_create_and_get(self, store):
        user = await add_user(store, "a@example.com")

        analysis = await add_analysis(store, user.id)
        loaded = await store.analyses.get(analysis.id)

        assert loaded.user_id == user.id
        assert loaded.data == ROWS
        assert loaded.columns == ["Region", "Sales"]
        assert loaded.row_count == 2

    @pytest.mark.asyncio
    async def test_get_for_user_checks_owner(self, store):
        owner = await add_user(store, "a@example.com")
        stranger = await add_user(store, "b@example.com")
        analysis = await add_analysis(store, owner.id)

        assert (await store.analyses.get_for_user(analysis.id, owner.id)).id == analysis.id
        assert await store.analyses.get_for_user(analysis.id, stranger.id) is None
        assert await store.analyses.get_for_user("not-an-id", owner.id) is None

    @pytest.mark.asyncio
    async def test_list_for_user_leaves_out_rows(self, store):
        user = await add_user(store, "a@example.com")
        other = await add_user(store, "b@example.com")
        first = await add_analysis(store, user.id, "first.xlsx")
        second = await add_analysis(store, user.id, "second.xlsx")
        await add_analysis(store, other.id, "theirs.xlsx")

        history = await store.analyses.list_for_user(user.id)

        assert [a.id for a in history] == [second.id, first.id]
        assert all(a.data == [] for a in history)
        assert all(a.row_count == 2 for a in history)

    @pytest.mark.asyncio
    async def test_list_all_populates_owner(self, store):
        user = await add_user(store, "a@example.com")
        await add_analysis(store, user.id)

        (analysis,) = await store.analyses.list_all()

        assert analysis.owner.id == user.id
        assert analysis.owner.email == "a@example.com"
        assert analysis.data == ROWS

    @pytest.mark.asyncio
    async def test_recent(self, store):
        user = await add_user(store, "a@example.com")
        for index in range(4):
            await add_analysis(store, user.id, f"{index}.xlsx")

        recent = await store.analyses.recent(limit=2)

        assert [a.original_name for a in recent] == ["3.xlsx", "2.xlsx"]
        assert recent[0].owner.name == "Test User"
        assert recent[0].data == []

    @pytest.mark.asyncio
    async def test_add_chart(self, store):
        user = await add_user(store, "a@example.com")
        analysis = await add_analysis(store, user.id)
        chart = ChartConfig(
            type=ChartType.COLUMN_3D,
            x_axis="Region",
            y_axis="Sales",
            config={"labels": ["North", "South"], "values": [120, 80]},
        )

        updated = await store.analyses.add_chart(analysis.id, chart)

        assert updated.charts[0].type == ChartType.COLUMN_3D
        assert updated.charts[0].config["values"] == [120, 80]
        assert (await store.analyses.get(analysis.id)).charts[0].x_axis == "Region"
        assert await store.analyses.add_chart(missing_id(), chart) is None

    @pytest.mark.asyncio
    async def test_delete_for_user_cascades(self, store):
        owner = await add_user(store, "a@example.com")
        other = await add_user(store, "b@example.com")
        await add_analysis(store, owner.id)
        await add_analysis(store, owner.id)
        kept = await add_analysis(store, other.id)

        assert await store.analyses.delete_for_user(owner.id) == 2
        assert await store.analyses.count() == 1
        assert await store.analyses.get(kept.id) is not None

    @pytest.mark.asyncio
    async def test_delete(self, store):
        user = await add_user(store, "a@example.com")
        analysis = await add_analysis(store, user.id)

        assert await store.analyses.delete(analysis.id) is True
        assert await store.analyses.delete(analysis.id) is False
        assert await store.analyses.delete("not-an-id") is False


async def run_scenario(store) -> dict:
    """
    Drive one store through a typical session and return what the API
    would serialize, with ids replaced by their order of appearance.
    """
    ada = await add_user(store, "ada@example.com")
    bob = await add_user(store, "bob@example.com", role=UserRole.ADMIN)
    first = await add_analysis(store, ada.id, "first.xlsx")
    await store.users.add_upload(ada.id, first.id)
    second = await add_analysis(store, bob.id, "second.xlsx")
    await store.analyses.add_chart(first.id, ChartConfig(
        type=ChartType.PIE, x_axis="Region", y_axis="Sales",
        config={"labels": ["North", "South"], "datasets": [{"data": [120, 80]}]},
    ))

    labels = {"user": {}, "analysis": {}}

    def label(kind, value):
        seen = labels[kind]
        return seen.setdefault(value, f"{kind}{len(seen)}")

    def analysis_view(analysis):
        dumped = analysis.model_dump(mode="json", exclude={"created_at", "updated_at"})
        dumped["id"] = label("analysis", dumped["id"])
        dumped["user_id"] = label("user", dumped["user_id"])
        if dumped["owner"]:
            dumped["owner"]["id"] = label("user", dumped["owner"]["id"])
        for chart in dumped["charts"]:
            chart.pop("created_at")
        return dumped

    for user in (ada, bob):
        label("user", user.id)
    for analysis in (first, second):
        label("analysis", analysis.id)

    result = {
        "users": [
            {**user.public_dict(), "id": label("user", user.id),
             "upload_history": [label("analysis", i) for i in user.upload_history],
             "created_at": None, "updated_at": None}
            for user in await store.users.list()
        ],
        "history": [analysis_view(a) for a in await store.analyses.list_for_user(ada.id)],
        "all": [analysis_view(a) for a in await store.analyses.list_all()],
        "recent": [analysis_view(a) for a in await store.analyses.recent()],
        "roles": await store.users.count_by_role(),
    }
    result["deleted"] = await store.analyses.delete_for_user(ada.id)
    result["remaining"] = await store.analyses.count()
    return result


@pytest.mark.asyncio
async def test_both_modes_return_the_same_results():
    memory = await run_scenario(await make_storage("memory"))
    mongo = await run_scenario(await make_storage("mongo"))

    assert memory == mongo
    assert memory["roles"] == {"admin": 1, "user": 1}
    assert memory["history"][0]["charts"][0]["type"] == "pie"
    assert memory["deleted"] == 1 and memory["remaining"] == 1
