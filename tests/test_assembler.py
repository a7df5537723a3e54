import unittest

from htmlpackager.core.assembler import assemble, asset_lookup_literal
from htmlpackager.models import (
    LoadedResources,
    PackagerConfig,
    PlayerOptions,
    ProjectFormat,
    ProjectPayload,
)

CUSTOM_STYLE_MARKER = "/* Custom style... */"


def _resources():
    return LoadedResources(
        texts_by_category={"script": "RUNTIME_SCRIPT();", "style": ".runtime-style {}"},
        binaries={
            "fonts/b.woff": "data:font/woff;base64,BBBB",
            "fonts/a.ttf": "data:font/ttf;base64,AAAA",
        },
    )


def _project():
    return ProjectPayload(format=ProjectFormat.SB3, data_url="data:application/zip;base64,UEsDBA==")


def _split_custom_style(doc):
    start = doc.index(CUSTOM_STYLE_MARKER)
    end = doc.index("</style>", start)
    return doc[:start], doc[start:end], doc[end:]


class TestAssembler(unittest.TestCase):
    def test_pure(self):
        config = PackagerConfig("Loading...", "console.log(1);", "body { color: red; }")
        self.assertEqual(
            assemble(_resources(), _project(), config),
            assemble(_resources(), _project(), config),
        )

    def test_sections_in_fixed_order(self):
        doc = assemble(_resources(), _project(), PackagerConfig())

        order = [
            doc.index(".runtime-style {}"),
            doc.index("RUNTIME_SCRIPT();"),
            doc.index('"fonts/b.woff": "data:font/woff;base64,BBBB"'),
            doc.index("var type = 'sb3';"),
            doc.index("var project = 'data:application/zip;base64,UEsDBA==';"),
            doc.index("player.loadProjectFromBuffer"),
        ]
        self.assertEqual(order, sorted(order))

    def test_custom_style_only_changes_its_region(self):
        a = assemble(_resources(), _project(), PackagerConfig("Hi", "go();", ".a { top: 0; }"))
        b = assemble(_resources(), _project(), PackagerConfig("Hi", "go();", ".b { left: 0; }"))

        before_a, region_a, after_a = _split_custom_style(a)
        before_b, region_b, after_b = _split_custom_style(b)
        self.assertEqual(before_a, before_b)
        self.assertEqual(after_a, after_b)
        self.assertNotEqual(region_a, region_b)
        self.assertIn(".b { left: 0; }", region_b)

    def test_config_text_is_verbatim(self):
        config = PackagerConfig(
            loading_text="<b>Loading</b> & waiting",
            post_load_script="if (a < b && c) { alert('<done>'); }",
            custom_style="h1 > span { color: #fff; }",
        )
        doc = assemble(_resources(), _project(), config)

        self.assertIn("<h1><b>Loading</b> & waiting</h1>", doc)
        self.assertIn("if (a < b && c) { alert('<done>'); }", doc)
        self.assertIn("h1 > span { color: #fff; }", doc)

    def test_empty_loading_text_has_no_heading(self):
        doc = assemble(_resources(), _project(), PackagerConfig())
        self.assertNotIn("<h1></h1>", doc)
        self.assertEqual(doc.count("<h1>"), 1)  # the error screen only

    def test_player_options(self):
        doc = assemble(
            _resources(),
            _project(),
            PackagerConfig(),
            player_options=PlayerOptions(fullscreen_mode="full"),
            controls_options={"enableFullscreen": True},
        )
        self.assertIn('"fullscreenMode": "full"', doc)
        self.assertIn('var controlsOptions = {"enableFullscreen": true};', doc)

        default = assemble(_resources(), _project(), PackagerConfig())
        self.assertIn("var controlsOptions = null;", default)

    def test_sb2_type(self):
        project = ProjectPayload(format=ProjectFormat.SB2, data_url="data:;base64,")
        doc = assemble(_resources(), project, PackagerConfig())
        self.assertIn("var type = 'sb2';", doc)

    def test_asset_lookup_keeps_order(self):
        literal = asset_lookup_literal(_resources().binaries)
        self.assertLess(literal.index("fonts/b.woff"), literal.index("fonts/a.ttf"))
        self.assertTrue(literal.startswith("{") and literal.endswith("}"))


if __name__ == "__main__":
    unittest.main()
