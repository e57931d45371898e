import types
import unittest

import aiosqlite
from fastapi import HTTPException

from aapps.access import visibility_set
from aapps.apps.projects import routes as projects_router
from aapps.apps.projects.migrations import MIGRATIONS
from aapps.db.migrations import run_migrations
from aapps.db.repositories import SqliteProjectRepository
from aapps.models import AppConfig, ProjectFields, RosterEntry


ROSTER = (
    RosterEntry(username="alice", share_group="studio"),
    RosterEntry(username="bob", share_group="studio"),
    RosterEntry(username="carol"),
)

_EMPTY_FORM = {
    "short_description": "",
    "full_description": "",
    "website_url": "",
    "source_url": "",
    "is_commercial": "",
    "is_open_source": "",
    "is_public": "",
}


class ProjectsRouterTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.db = await aiosqlite.connect(":memory:")
        self.db.row_factory = aiosqlite.Row
        await self.db.execute("PRAGMA foreign_keys=ON")
        await run_migrations(self.db, MIGRATIONS)
        self.repo = SqliteProjectRepository(self.db)
        self.request = types.SimpleNamespace(
            app=types.SimpleNamespace(
                state=types.SimpleNamespace(
                    db=self.db,
                    roster=ROSTER,
                    title="Projects",
                    base_path="",
                    app_config=AppConfig(),
                )
            ),
            cookies={},
            headers={},
            query_params={},
        )
        self.alice = visibility_set("alice", ROSTER)
        self.bob = visibility_set("bob", ROSTER)
        self.carol = visibility_set("carol", ROSTER)

    async def asyncTearDown(self) -> None:
        await self.db.close()

    async def test_create_project_from_form(self) -> None:
        form = dict(_EMPTY_FORM, is_open_source="on", short_description="A desk lamp")
        response = await projects_router.create_project(
            self.request, short_name=" Lamp ", stage="development", rating="7", username="alice", **form
        )

        self.assertEqual(response.headers["HX-Redirect"], "/")
        [project] = await self.repo.list_projects(self.alice)
        self.assertEqual(project.short_name, "Lamp")
        self.assertTrue(project.is_open_source)
        self.assertFalse(project.is_commercial)
        self.assertEqual(project.rating, 5)
        self.assertEqual(project.stage, "development")

    async def test_create_project_requires_name(self) -> None:
        with self.assertRaises(HTTPException) as ctx:
            await projects_router.create_project(
                self.request, short_name="  ", stage="idea", rating="0", username="alice", **_EMPTY_FORM
            )
        self.assertEqual(ctx.exception.status_code, 400)

    async def test_home_lists_group_projects_with_filters(self) -> None:
        await self.repo.create_project("alice", ProjectFields(short_name="Lamp", stage="development"))
        await self.repo.create_project("bob", ProjectFields(short_name="Shelf", stage="idea"))
        await self.repo.create_project("carol", ProjectFields(short_name="Kiln"))

        response = await projects_router.home(
            self.request, stage="", type_filter="", rating="", username="bob", shared=self.bob
        )
        body = response.body.decode()
        self.assertIn("Lamp", body)
        self.assertIn("Shelf", body)
        self.assertNotIn("Kiln", body)

        response = await projects_router.home(
            self.request, stage="idea", type_filter="", rating="", username="bob", shared=self.bob
        )
        self.assertNotIn("Lamp", response.body.decode())

    async def test_rating_filter_tolerates_bad_values(self) -> None:
        await self.repo.create_project("alice", ProjectFields(short_name="Lamp", rating=3))

        for value in ("", "x", "0"):
            response = await projects_router.home(
                self.request, stage="", type_filter="", rating=value, username="alice", shared=self.alice
            )
            self.assertIn("Lamp", response.body.decode())

        response = await projects_router.home(
            self.request, stage="", type_filter="", rating="9", username="alice", shared=self.alice
        )
        self.assertNotIn("Lamp", response.body.decode())

    async def test_detail_of_foreign_project_is_not_found(self) -> None:
        project_id = await self.repo.create_project("alice", ProjectFields(short_name="Lamp"))

        response = await projects_router.project_detail(self.request, project_id, username="bob", shared=self.bob)
        self.assertIn("No log entries yet.", response.body.decode())

        with self.assertRaises(HTTPException) as ctx:
            await projects_router.project_detail(self.request, project_id, username="carol", shared=self.carol)
        self.assertEqual(ctx.exception.status_code, 404)

    async def test_update_stage(self) -> None:
        project_id = await self.repo.create_project("alice", ProjectFields(short_name="Lamp"))

        with self.assertRaises(HTTPException) as ctx:
            await projects_router.update_project_stage(self.request, project_id, stage="shipping", shared=self.alice)
        self.assertEqual(ctx.exception.status_code, 400)

        with self.assertRaises(HTTPException) as ctx:
            await projects_router.update_project_stage(self.request, project_id, stage="released", shared=self.carol)
        self.assertEqual(ctx.exception.status_code, 404)

        await projects_router.update_project_stage(self.request, project_id, stage="released", shared=self.bob)
        project = await self.repo.get_project(project_id, self.alice)
        self.assertEqual(project.stage, "released")

    async def test_update_foreign_project_is_not_found(self) -> None:
        project_id = await self.repo.create_project("alice", ProjectFields(short_name="Lamp"))
        with self.assertRaises(HTTPException) as ctx:
            await projects_router.update_project(
                self.request, project_id, short_name="Mine now", stage="idea", rating="0",
                shared=self.carol, **_EMPTY_FORM
            )
        self.assertEqual(ctx.exception.status_code, 404)

    async def test_log_and_reply(self) -> None:
        project_id = await self.repo.create_project("alice", ProjectFields(short_name="Lamp"))

        response = await projects_router.create_log_entry(
            self.request, project_id, note="Ordered parts", url="", username="alice", shared=self.alice
        )
        self.assertIn("Ordered parts", response.body.decode())
        [root] = await self.repo.list_log_entries(project_id, self.alice)

        response = await projects_router.create_log_reply(
            self.request, project_id, root.id, note="Parts arrived", url="", username="bob", shared=self.bob
        )
        self.assertIn("Parts arrived", response.body.decode())
        [root] = await self.repo.list_log_entries(project_id, self.bob)
        self.assertEqual([c.note for c in root.children], ["Parts arrived"])

    async def test_log_note_is_required(self) -> None:
        project_id = await self.repo.create_project("alice", ProjectFields(short_name="Lamp"))
        with self.assertRaises(HTTPException) as ctx:
            await projects_router.create_log_entry(
                self.request, project_id, note="   ", url="", username="alice", shared=self.alice
            )
        self.assertEqual(ctx.exception.status_code, 400)

    async def test_reply_to_other_tenants_entry_is_rejected(self) -> None:
        alice_project = await self.repo.create_project("alice", ProjectFields(short_name="Lamp"))
        carol_project = await self.repo.create_project("carol", ProjectFields(short_name="Kiln"))
        alice_entry = await self.repo.create_log_entry(alice_project, "alice", "Private note")

        # Carol replies on her own project but points at Alice's entry.
        with self.assertRaises(HTTPException) as ctx:
            await projects_router.create_log_reply(
                self.request, carol_project, alice_entry, note="hi", url="", username="carol", shared=self.carol
            )
        self.assertEqual(ctx.exception.status_code, 404)

        self.assertEqual(await self.repo.list_log_entries(carol_project, self.carol), [])

    async def test_reply_parent_must_belong_to_project(self) -> None:
        lamp = await self.repo.create_project("alice", ProjectFields(short_name="Lamp"))
        shelf = await self.repo.create_project("alice", ProjectFields(short_name="Shelf"))
        lamp_entry = await self.repo.create_log_entry(lamp, "alice", "Lamp note")

        with self.assertRaises(HTTPException) as ctx:
            await projects_router.create_log_reply(
                self.request, shelf, lamp_entry, note="wrong thread", url="", username="alice", shared=self.alice
            )
        self.assertEqual(ctx.exception.status_code, 404)

    async def test_reply_to_a_reply_is_rejected(self) -> None:
        project_id = await self.repo.create_project("alice", ProjectFields(short_name="Lamp"))
        root = await self.repo.create_log_entry(project_id, "alice", "Start")
        reply = await self.repo.create_log_entry(project_id, "bob", "Reply", parent_id=root)

        with self.assertRaises(HTTPException) as ctx:
            await projects_router.create_log_reply(
                self.request, project_id, reply, note="deeper", url="", username="alice", shared=self.alice
            )
        self.assertEqual(ctx.exception.status_code, 400)

        [tree] = await self.repo.list_log_entries(project_id, self.alice)
        self.assertEqual([c.children for c in tree.children], [[]])

    async def test_delete_log_entry_returns_timeline(self) -> None:
        project_id = await self.repo.create_project("alice", ProjectFields(short_name="Lamp"))
        entry = await self.repo.create_log_entry(project_id, "alice", "Oops")

        response = await projects_router.delete_log_entry(self.request, project_id, entry, shared=self.bob)

        self.assertIn("No log entries yet.", response.body.decode())


if __name__ == "__main__":
    unittest.main()
