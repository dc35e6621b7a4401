import asyncio
import json
import tempfile
import unittest
import zipfile
from pathlib import Path, PurePosixPath

from mc_translator.core.output_storage import OutputStorage
from mc_translator.core.translation.models import AssetStatus
from mc_translator.core.translation.orchestrator import PipelineCoordinator

from tests.helpers import FakeGateway, RecordingSleep, make_settings, prefix_translator

QUEST = '{\n\ttitle: "Intro"\n\tquests: [\n\t\t{ title: "First", x: 1.0d }\n\t\t{ title: "Second" }\n\t]\n}\n'


class PipelineCoordinatorTests(unittest.IsolatedAsyncioTestCase):

    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.root = Path(self._tmp.name) / "pack"
        self.out = Path(self._tmp.name) / "out"

    def _write(self, relative: str, content: str) -> Path:
        path = self.root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    def _write_json(self, relative: str, data: dict) -> Path:
        return self._write(relative, json.dumps(data, ensure_ascii=False))

    def _output(self, relative: str) -> str:
        return (self.out / relative).read_text(encoding="utf-8")

    def _output_json(self, relative: str) -> dict:
        return json.loads(self._output(relative))

    def _coordinator(self, gateway, incremental=False, **overrides) -> PipelineCoordinator:
        settings = make_settings(
            input_path=str(self.root), output_path=str(self.out), **overrides
        )
        return PipelineCoordinator(
            settings, gateway, incremental=incremental, sleep=RecordingSleep()
        )

    async def test_translates_every_asset_kind(self) -> None:
        self._write_json(
            "assets/minecart/lang/en_us.json",
            {"item.cart": "Cart §a(%s)", "item.wagon": "Wagon"},
        )
        self._write("assets/old/lang/en_us.lang", "# legacy\nitem.rail=Rail\n")
        self._write("config/ftbquests/quests/chapters/intro.snbt", QUEST)
        jar = self.root / "mods" / "jarmod.jar"
        jar.parent.mkdir(parents=True)
        with zipfile.ZipFile(jar, "w") as archive:
            archive.writestr("assets/jarmod/lang/en_us.json", json.dumps({"item.hopper": "Hopper"}))

        report = await self._coordinator(FakeGateway()).run()

        self.assertEqual(len(report.translated), 4, report.summary())
        self.assertEqual(
            self._output_json("assets/minecart/lang/zh_cn.json"),
            {"item.cart": "ZH:Cart §a(%s)", "item.wagon": "ZH:Wagon"},
        )
        self.assertEqual(self._output("assets/old/lang/zh_cn.lang"), "# legacy\nitem.rail=ZH:Rail\n")
        self.assertEqual(
            self._output_json("assets/jarmod/lang/zh_cn.json"), {"item.hopper": "ZH:Hopper"}
        )
        self.assertEqual(
            self._output("config/ftbquests/quests/chapters/intro.snbt"),
            QUEST.replace('"Intro"', '"ZH:Intro"')
            .replace('"First"', '"ZH:First"')
            .replace('"Second"', '"ZH:Second"'),
        )
        meta = json.loads(self._output("pack.mcmeta"))
        self.assertEqual(meta["pack"]["pack_format"], 3)

    async def test_failed_batch_falls_back_to_source_and_run_continues(self) -> None:
        self._write_json("assets/broken_reply/lang/en_us.json", {"a": "A", "b": "B", "c": "C"})
        self._write_json("assets/fine/lang/en_us.json", {"d": "D"})

        def _reply(bundle):
            texts = json.loads(bundle.user_prompt)
            if len(texts) == 3:
                return json.dumps(texts[:2])
            return prefix_translator()(bundle)

        report = await self._coordinator(FakeGateway(handler=_reply), max_retries=0).run()

        outcomes = {o.asset: o for o in report.outcomes}
        broken = outcomes["assets/broken_reply/lang/en_us.json"]
        self.assertEqual(broken.status, AssetStatus.TRANSLATED)
        self.assertEqual(broken.untranslated_ids, ["a", "b", "c"])
        self.assertEqual(
            self._output_json("assets/broken_reply/lang/zh_cn.json"), {"a": "A", "b": "B", "c": "C"}
        )
        self.assertEqual(
            OutputStorage(self.out).read_untranslated(PurePosixPath("assets/broken_reply/lang/zh_cn.json")),
            {"a": "A", "b": "B", "c": "C"},
        )
        self.assertEqual(outcomes["assets/fine/lang/en_us.json"].status, AssetStatus.TRANSLATED)
        self.assertEqual(self._output_json("assets/fine/lang/zh_cn.json"), {"d": "ZH:D"})

    async def test_incremental_run_resends_fallback_entries(self) -> None:
        self._write_json("assets/mod/lang/en_us.json", {"a": "A", "b": "B"})
        relpath = PurePosixPath("assets/mod/lang/zh_cn.json")
        await self._coordinator(
            FakeGateway(handler=lambda bundle: "not json"), max_retries=0
        ).run()

        gateway = FakeGateway()
        report = await self._coordinator(gateway, incremental=True).run()

        self.assertEqual(sorted(gateway.sent_texts()), ["A", "B"])
        self.assertEqual(report.outcomes[0].status, AssetStatus.TRANSLATED)
        self.assertEqual(self._output_json(str(relpath)), {"a": "ZH:A", "b": "ZH:B"})
        self.assertEqual(OutputStorage(self.out).read_untranslated(relpath), {})

    async def test_incremental_run_keeps_accepted_translations(self) -> None:
        self._write_json("assets/minecart/lang/en_us.json", {"item.cart": "Cart", "item.wagon": "Wagon"})
        out_file = self.out / "assets" / "minecart" / "lang" / "zh_cn.json"
        out_file.parent.mkdir(parents=True)
        out_file.write_text(
            json.dumps({"item.cart": "车", "item.removed": "旧"}, ensure_ascii=False),
            encoding="utf-8",
        )
        gateway = FakeGateway(handler=lambda bundle: json.dumps(["货车"], ensure_ascii=False))

        report = await self._coordinator(gateway, incremental=True).run()

        self.assertEqual(gateway.sent_texts(), ["Wagon"])
        self.assertEqual(
            self._output_json("assets/minecart/lang/zh_cn.json"),
            {"item.cart": "车", "item.wagon": "货车"},
        )
        outcome = report.outcomes[0]
        self.assertEqual((outcome.units_translated, outcome.units_reused), (1, 1))

    async def test_incremental_run_uses_bundled_translation(self) -> None:
        self._write_json("assets/create/lang/en_us.json", {"a": "A", "b": "B"})
        self._write_json("assets/create/lang/zh_cn.json", {"a": "甲"})
        gateway = FakeGateway()

        await self._coordinator(gateway, incremental=True).run()

        self.assertEqual(gateway.sent_texts(), ["B"])
        self.assertEqual(self._output_json("assets/create/lang/zh_cn.json"), {"a": "甲", "b": "ZH:B"})

    async def test_unchanged_incremental_run_is_up_to_date(self) -> None:
        self._write_json("assets/mod/lang/en_us.json", {"a": "A"})
        await self._coordinator(FakeGateway()).run()
        gateway = FakeGateway()

        report = await self._coordinator(gateway, incremental=True).run()

        self.assertEqual(gateway.calls, [])
        self.assertEqual(report.outcomes[0].status, AssetStatus.SKIPPED)
        self.assertEqual(report.outcomes[0].reason, "up to date")

    async def test_existing_output_is_skipped_when_not_incremental(self) -> None:
        self._write_json("assets/mod/lang/en_us.json", {"a": "A"})
        await self._coordinator(FakeGateway()).run()
        gateway = FakeGateway()

        report = await self._coordinator(gateway).run()

        self.assertEqual(gateway.calls, [])
        self.assertEqual(report.outcomes[0].status, AssetStatus.SKIPPED)
        self.assertEqual(report.outcomes[0].reason, "output exists")

    async def test_quest_reuses_translations_of_unchanged_source(self) -> None:
        path = self._write("config/ftbquests/quests/chapters/intro.snbt", QUEST)
        await self._coordinator(FakeGateway(), skip_existing=False).run()
        path.write_text(QUEST.replace('"Second"', '"Second Step"'), encoding="utf-8")
        gateway = FakeGateway()

        await self._coordinator(gateway, skip_existing=False).run()

        self.assertEqual(gateway.sent_texts(), ["Second Step"])
        output = self._output("config/ftbquests/quests/chapters/intro.snbt")
        self.assertIn('title: "ZH:Intro"', output)
        self.assertIn('title: "ZH:Second Step"', output)

    async def test_skip_quest_setting(self) -> None:
        self._write("config/ftbquests/quests/chapters/intro.snbt", QUEST)
        gateway = FakeGateway()

        report = await self._coordinator(gateway, skip_quest=True).run()

        self.assertEqual(report.outcomes[0].status, AssetStatus.SKIPPED)
        self.assertEqual(gateway.calls, [])
        self.assertFalse((self.out / "pack.mcmeta").exists())

    async def test_malformed_asset_does_not_halt_run(self) -> None:
        self._write("assets/broken/lang/en_us.json", "{not json")
        self._write_json("assets/fine/lang/en_us.json", {"a": "A"})

        report = await self._coordinator(FakeGateway()).run()

        statuses = {o.asset: o.status for o in report.outcomes}
        self.assertEqual(statuses["assets/broken/lang/en_us.json"], AssetStatus.FAILED)
        self.assertEqual(statuses["assets/fine/lang/en_us.json"], AssetStatus.TRANSLATED)
        self.assertIn("invalid JSON", report.failed[0].reason)
        self.assertFalse((self.out / "assets" / "broken").exists())

    async def test_strict_rebuild_fails_incomplete_document(self) -> None:
        self._write_json("assets/mod/lang/en_us.json", {"a": "A"})

        report = await self._coordinator(
            FakeGateway(handler=lambda bundle: "[]"), max_retries=0, strict_rebuild=True
        ).run()

        self.assertEqual(report.outcomes[0].status, AssetStatus.FAILED)
        self.assertIn("Missing translations", report.outcomes[0].reason)
        self.assertFalse((self.out / "assets" / "mod" / "lang" / "zh_cn.json").exists())

    async def test_cancelled_run_writes_nothing(self) -> None:
        self._write_json("assets/a/lang/en_us.json", {"a": "A"})
        self._write_json("assets/b/lang/en_us.json", {"b": "B"})
        coordinator = self._coordinator(FakeGateway(), file_semaphore=1)

        def _reply(bundle):
            coordinator.cancel()
            return prefix_translator()(bundle)

        coordinator.gateway = FakeGateway(handler=_reply)
        report = await coordinator.run()

        self.assertTrue(report.cancelled)
        self.assertEqual(
            [o.status for o in report.outcomes], [AssetStatus.CANCELLED, AssetStatus.CANCELLED]
        )
        self.assertFalse(self.out.exists())

    async def test_file_gate_limits_concurrent_assets(self) -> None:
        for i in range(4):
            self._write_json(f"assets/mod{i}/lang/en_us.json", {"k": f"text {i}"})
        active = 0
        peak = 0

        class _SlowGateway(FakeGateway):
            async def call(self, bundle):
                nonlocal active, peak
                active += 1
                peak = max(peak, active)
                try:
                    await asyncio.sleep(0.01)
                    return await super().call(bundle)
                finally:
                    active -= 1

        report = await self._coordinator(_SlowGateway(), file_semaphore=2).run()

        self.assertEqual(len(report.translated), 4)
        self.assertLessEqual(peak, 2)

    async def test_second_document_for_one_output_path_fails_as_collision(self) -> None:
        self._write_json("assets/create/lang/en_us.json", {"block.belt": "Belt"})
        jar = self.root / "mods" / "create.jar"
        jar.parent.mkdir(parents=True)
        with zipfile.ZipFile(jar, "w") as archive:
            archive.writestr("assets/create/lang/en_us.json", json.dumps({"block.gear": "Gear"}))

        report = await self._coordinator(FakeGateway(), file_semaphore=1).run()

        self.assertEqual(len(report.translated), 1, report.summary())
        self.assertEqual(len(report.failed), 1, report.summary())
        self.assertIn("output collision", report.failed[0].reason)
        written = self._output_json("assets/create/lang/zh_cn.json")
        self.assertIn(written, [{"block.belt": "ZH:Belt"}, {"block.gear": "ZH:Gear"}])

    async def test_quest_locale_files_of_other_languages_are_ignored(self) -> None:
        self._write("config/ftbquests/quests/lang/en_us.snbt", '{\n\ttitle: "Mine iron"\n}\n')
        self._write("config/ftbquests/quests/lang/zh_cn.snbt", '{\n\ttitle: "挖铁矿"\n}\n')
        gateway = FakeGateway()

        report = await self._coordinator(gateway).run()

        self.assertEqual(len(report.outcomes), 1, report.summary())
        self.assertEqual(report.outcomes[0].status, AssetStatus.TRANSLATED)
        self.assertEqual(gateway.sent_texts(), ["Mine iron"])
        self.assertEqual(
            self._output("config/ftbquests/quests/lang/zh_cn.snbt"), '{\n\ttitle: "ZH:Mine iron"\n}\n'
        )


if __name__ == "__main__":
    unittest.main()
