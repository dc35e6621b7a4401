import json
import unittest

from mc_translator.core.exceptions import ResponseShapeError
from mc_translator.core.translation.models import LLMResponse, MaskedUnit, TranslationUnit
from mc_translator.core.translation.pipeline import OutputProcessor, PromptEngine, split

from tests.helpers import make_settings


def _masked(*texts: str) -> list[MaskedUnit]:
    return [
        MaskedUnit(unit=TranslationUnit(id=f"k{i}", source_text=t), masked_text=t)
        for i, t in enumerate(texts)
    ]


class SplitTests(unittest.TestCase):

    def test_split_preserves_order_and_sizes(self) -> None:
        units = _masked("a", "b", "c", "d", "e")

        batches = split(units, 2, "doc", "create")

        self.assertEqual([len(b) for b in batches], [2, 2, 1])
        self.assertEqual([b.batch_index for b in batches], [0, 1, 2])
        self.assertEqual(
            [u.id for b in batches for u in b.units], ["k0", "k1", "k2", "k3", "k4"]
        )
        self.assertTrue(all(b.module_id == "create" for b in batches))

    def test_split_of_empty_document_yields_no_batches(self) -> None:
        self.assertEqual(split([], 10, "doc"), [])

    def test_split_rejects_non_positive_size(self) -> None:
        with self.assertRaises(ValueError):
            split(_masked("a"), 0, "doc")


class PromptEngineTests(unittest.TestCase):

    def test_prompt_substitutes_module_and_languages(self) -> None:
        settings = make_settings(
            prompt="Mod {MOD_ID}: {SOURCE_LANG} -> {TARGET_LANG}", target_lang="ja_jp"
        )
        batch = split(_masked("Cart", "货车 \"x\""), 10, "doc", "minecart_mod")[0]

        bundle = PromptEngine(settings).build(batch)

        self.assertEqual(bundle.system_prompt, "Mod minecart_mod: en_us -> ja_jp")
        self.assertEqual(json.loads(bundle.user_prompt), ["Cart", "货车 \"x\""])
        self.assertIn("货车", bundle.user_prompt)
        self.assertEqual(bundle.payload(), ["Cart", "货车 \"x\""])
        self.assertEqual(bundle.module_id, "minecart_mod")
        self.assertEqual(bundle.expected_items, 2)
        self.assertEqual(bundle.temperature, settings.temperature)


class OutputProcessorTests(unittest.TestCase):

    def test_parse_array_accepts_bare_json_array(self) -> None:
        self.assertEqual(OutputProcessor.parse_array(' ["一", "二"] \n', 2), ["一", "二"])

    def test_parse_array_rejects_contract_violations(self) -> None:
        bad_replies = [
            "",
            '```json\n["一"]\n```',
            "not json",
            '{"a": "一"}',
            '["一", "二"]',
            "[1]",
        ]
        for content in bad_replies:
            with self.subTest(content=content):
                with self.assertRaises(ResponseShapeError):
                    OutputProcessor.parse_array(content, 1)

    def test_process_maps_results_by_position(self) -> None:
        batch = split(_masked("Cart", "Wagon"), 10, "doc")[0]
        response = LLMResponse(content='["车", "货车"]', provider="fake", model="m")

        results = OutputProcessor().process(response, batch)

        self.assertEqual(
            [(r.unit_id, r.translated_text) for r in results],
            [("k0", "车"), ("k1", "货车")],
        )

    def test_truncated_reply_is_reported(self) -> None:
        batch = split(_masked("Cart", "Wagon"), 10, "doc")[0]
        response = LLMResponse(
            content='["车", "货', provider="fake", model="m", finish_reason="length"
        )

        with self.assertRaises(ResponseShapeError) as ctx:
            OutputProcessor().process(response, batch)
        self.assertIn("token limit", str(ctx.exception))


if __name__ == "__main__":
    unittest.main()
