"""Unit tests for the whiteboard service."""

from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from collabhub.models import User, Whiteboard
from collabhub.schemas.whiteboard import ElementCreate, ElementUpdate
from collabhub.services import whiteboard_service


def rectangle(element_id=None, **overrides) -> ElementCreate:
    data = {"type": "rectangle", "position": {"x": 10, "y": 20}}
    if element_id is not None:
        data["id"] = element_id
    data.update(overrides)
    return ElementCreate.model_validate(data)


class TestElementMutations:
    """Tests for adding, updating and removing elements."""

    @pytest.mark.asyncio
    async def test_add_element_with_client_id(
        self, session_factory, test_whiteboard: Whiteboard, test_user: User
    ):
        """Test that a client-supplied id is kept."""
        async with session_factory() as db:
            element = await whiteboard_service.add_element(
                db, test_whiteboard.id, rectangle("el-1"), test_user.id
            )

        assert element is not None
        assert element.element_id == "el-1"
        assert element.type == "rectangle"
        assert element.position == {"x": 10.0, "y": 20.0}
        assert element.size == {"width": 100.0, "height": 100.0}
        assert element.style == {"opacity": 1}
        assert element.created_by == test_user.id

    @pytest.mark.asyncio
    async def test_add_element_generates_id(
        self, session_factory, test_whiteboard: Whiteboard, test_user: User
    ):
        """Test that a missing id is generated server-side."""
        async with session_factory() as db:
            element = await whiteboard_service.add_element(
                db, test_whiteboard.id, rectangle(), test_user.id
            )

        assert element.element_id.startswith("element_")

    @pytest.mark.asyncio
    async def test_add_element_duplicate_id(
        self, session_factory, test_whiteboard: Whiteboard, test_user: User
    ):
        """Test that a duplicate id on the same whiteboard is refused."""
        async with session_factory() as db:
            await whiteboard_service.add_element(
                db, test_whiteboard.id, rectangle("el-1"), test_user.id
            )
        async with session_factory() as db:
            duplicate = await whiteboard_service.add_element(
                db, test_whiteboard.id, rectangle("el-1"), test_user.id
            )
            elements = await whiteboard_service.list_elements(db, test_whiteboard.id)

        assert duplicate is None
        assert len(elements) == 1

    @pytest.mark.asyncio
    async def test_mutations_bump_version(
        self, session_factory, test_whiteboard: Whiteboard, test_user: User
    ):
        """Test that add, update and remove each increment the version."""
        async with session_factory() as db:
            await whiteboard_service.add_element(
                db, test_whiteboard.id, rectangle("el-1"), test_user.id
            )
            await whiteboard_service.update_element(
                db,
                test_whiteboard.id,
                "el-1",
                ElementUpdate.model_validate({"rotation": 45}),
                test_user.id,
            )
            await whiteboard_service.remove_element(db, test_whiteboard.id, "el-1")
            whiteboard = await whiteboard_service.get_whiteboard(db, test_whiteboard.id)

        assert whiteboard.version == 4

    @pytest.mark.asyncio
    async def test_update_element_merges_present_fields(
        self, session_factory, test_whiteboard: Whiteboard, test_user: User, test_user_2: User
    ):
        """Test that only fields present in the update change."""
        async with session_factory() as db:
            await whiteboard_service.add_element(
                db, test_whiteboard.id, rectangle("el-1", content="hello"), test_user.id
            )
            updated = await whiteboard_service.update_element(
                db,
                test_whiteboard.id,
                "el-1",
                ElementUpdate.model_validate({"position": {"x": 99, "y": 1}, "zIndex": 3}),
                test_user_2.id,
            )

        assert updated.position == {"x": 99.0, "y": 1.0}
        assert updated.z_index == 3
        assert updated.content == "hello"
        assert updated.type == "rectangle"
        assert updated.updated_by == test_user_2.id

    @pytest.mark.asyncio
    async def test_update_element_ignores_null_for_required_fields(
        self, session_factory, test_whiteboard: Whiteboard, test_user: User
    ):
        """Test that an explicit null does not blank a required column."""
        async with session_factory() as db:
            await whiteboard_service.add_element(
                db, test_whiteboard.id, rectangle("el-1"), test_user.id
            )
            updated = await whiteboard_service.update_element(
                db,
                test_whiteboard.id,
                "el-1",
                ElementUpdate.model_validate({"position": None, "content": None}),
                test_user.id,
            )

        assert updated.position == {"x": 10.0, "y": 20.0}
        assert updated.content is None

    @pytest.mark.asyncio
    async def test_update_unknown_element(
        self, session_factory, test_whiteboard: Whiteboard, test_user: User
    ):
        """Test that updating a missing element returns None."""
        async with session_factory() as db:
            result = await whiteboard_service.update_element(
                db,
                test_whiteboard.id,
                "missing",
                ElementUpdate.model_validate({"rotation": 1}),
                test_user.id,
            )
            whiteboard = await whiteboard_service.get_whiteboard(db, test_whiteboard.id)

        assert result is None
        assert whiteboard.version == 1

    @pytest.mark.asyncio
    async def test_remove_element(
        self, session_factory, test_whiteboard: Whiteboard, test_user: User
    ):
        """Test removing an element and removing it again."""
        async with session_factory() as db:
            await whiteboard_service.add_element(
                db, test_whiteboard.id, rectangle("el-1"), test_user.id
            )

            assert await whiteboard_service.remove_element(db, test_whiteboard.id, "el-1") is True
            assert await whiteboard_service.remove_element(db, test_whiteboard.id, "el-1") is False
            assert await whiteboard_service.get_element(db, test_whiteboard.id, "el-1") is None


class TestWhiteboardState:
    """Tests for loading the document sent on join."""

    @pytest.mark.asyncio
    async def test_state_of_unknown_whiteboard(self, db: AsyncSession):
        """Test that a missing whiteboard has no state."""
        assert await whiteboard_service.get_whiteboard_state(db, uuid4()) is None

    @pytest.mark.asyncio
    async def test_state_lists_elements_in_paint_order(
        self, session_factory, test_whiteboard: Whiteboard, test_user: User
    ):
        """Test that elements are ordered by z-index."""
        async with session_factory() as db:
            await whiteboard_service.add_element(
                db, test_whiteboard.id, rectangle("top", zIndex=5), test_user.id
            )
            await whiteboard_service.add_element(
                db, test_whiteboard.id, rectangle("bottom", zIndex=0), test_user.id
            )
            state = await whiteboard_service.get_whiteboard_state(db, test_whiteboard.id)

        assert [e.id for e in state.elements] == ["bottom", "top"]
        assert state.whiteboard.version == 3

    @pytest.mark.asyncio
    async def test_state_wire_format(
        self, session_factory, test_whiteboard: Whiteboard, test_user: User
    ):
        """Test the camelCase wire form of the state, collaborators included."""
        async with session_factory() as db:
            await whiteboard_service.add_element(
                db, test_whiteboard.id, rectangle("el-1"), test_user.id
            )
            await whiteboard_service.upsert_cursor(db, test_whiteboard.id, test_user.id, 5, 6)
            state = await whiteboard_service.get_whiteboard_state(db, test_whiteboard.id)

        wire = state.to_wire()
        assert wire["whiteboard"]["id"] == str(test_whiteboard.id)
        assert wire["whiteboard"]["projectId"] == str(test_whiteboard.project_id)
        assert wire["elements"][0]["id"] == "el-1"
        assert wire["elements"][0]["zIndex"] == 0
        assert wire["collaborators"][0]["user"]["username"] == "alice"
        assert wire["collaborators"][0]["cursor"] == {"x": 5.0, "y": 6.0}


class TestPresence:
    """Tests for collaborator cursors."""

    @pytest.mark.asyncio
    async def test_upsert_cursor_creates_then_moves(
        self, session_factory, test_whiteboard: Whiteboard, test_user: User
    ):
        """Test that a second cursor update moves the same entry."""
        async with session_factory() as db:
            await whiteboard_service.upsert_cursor(db, test_whiteboard.id, test_user.id, 1, 1)
            await whiteboard_service.upsert_cursor(db, test_whiteboard.id, test_user.id, 7, 8)
            collaborators = await whiteboard_service.list_collaborators(db, test_whiteboard.id)

        assert len(collaborators) == 1
        assert (collaborators[0].cursor_x, collaborators[0].cursor_y) == (7, 8)

    @pytest.mark.asyncio
    async def test_remove_collaborator(
        self, session_factory, test_whiteboard: Whiteboard, test_user: User
    ):
        """Test removing presence, twice."""
        async with session_factory() as db:
            await whiteboard_service.upsert_cursor(db, test_whiteboard.id, test_user.id)

            assert await whiteboard_service.remove_collaborator(
                db, test_whiteboard.id, test_user.id
            ) is True
            assert await whiteboard_service.remove_collaborator(
                db, test_whiteboard.id, test_user.id
            ) is False


class TestExport:
    """Tests for whiteboard export."""

    @pytest.mark.asyncio
    async def test_export_json(
        self, session_factory, test_whiteboard: Whiteboard, test_user: User
    ):
        """Test exporting a whiteboard as JSON."""
        async with session_factory() as db:
            await whiteboard_service.add_element(
                db, test_whiteboard.id, rectangle("el-1"), test_user.id
            )
            export = await whiteboard_service.export_whiteboard(db, test_whiteboard.id)

        assert export["name"] == "Sprint Planning"
        assert export["version"] == 2
        assert [e["id"] for e in export["elements"]] == ["el-1"]
        assert "exportedAt" in export

    @pytest.mark.asyncio
    async def test_export_unknown_whiteboard(self, db: AsyncSession):
        """Test exporting a missing whiteboard returns None."""
        assert await whiteboard_service.export_whiteboard(db, uuid4()) is None

    @pytest.mark.asyncio
    async def test_export_unsupported_format(self, db: AsyncSession, test_whiteboard: Whiteboard):
        """Test that formats other than JSON are rejected."""
        with pytest.raises(ValueError):
            await whiteboard_service.export_whiteboard(db, test_whiteboard.id, "png")
