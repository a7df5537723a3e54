import json
import tempfile
import unittest
from pathlib import Path

from htmlpackager.core.manifests import (
    RuntimeManifest,
    TextEntry,
    default_manifest,
    ensure_default_manifests_on_disk,
    from_json_dict,
    load_manifest,
    manifest_path,
    save_manifest,
    to_json_dict,
)


class TestManifests(unittest.TestCase):
    def test_default_manifest_shape(self):
        manifest = default_manifest()
        self.assertEqual(manifest.name, "forkphorus")
        self.assertEqual(manifest.texts[-1].category, "style")
        self.assertIn("fonts/Scratch.ttf", manifest.texts[-1].inline)
        self.assertEqual(manifest.texts[-2].src, "phosphorus.dist.js")

        texts = manifest.text_resources()
        self.assertFalse(any(t.loaded for t in texts))
        # Fresh resource objects every time.
        self.assertIsNot(texts[0], manifest.text_resources()[0])

    def test_json_roundtrip(self):
        manifest = default_manifest()
        again = from_json_dict(json.loads(json.dumps(to_json_dict(manifest))))
        self.assertEqual(again, manifest)

    def test_from_json_dict_normalizes(self):
        manifest = from_json_dict(
            {
                "texts": [{"category": "Style", "src": " a.css ", "inline": ["", "f.woff"]}],
                "binaries": ["  ", "x.ttf"],
            }
        )
        self.assertEqual(manifest.name, "Custom")
        self.assertEqual(manifest.texts, [TextEntry("style", "a.css", ["f.woff"])])
        self.assertEqual(manifest.binaries, ["x.ttf"])

    def test_from_json_dict_rejects_bad_entries(self):
        with self.assertRaises(ValueError):
            from_json_dict({"texts": [{"category": "image", "src": "a.png"}]})
        with self.assertRaises(ValueError):
            from_json_dict({"texts": [{"category": "script"}]})

    def test_defaults_on_disk_and_save(self):
        with tempfile.TemporaryDirectory() as td:
            ensure_default_manifests_on_disk(td)
            self.assertTrue(manifest_path(td, "forkphorus").exists())
            self.assertEqual(load_manifest(td, "forkphorus"), default_manifest())

            custom = RuntimeManifest(name="mini", texts=[TextEntry("script", "a.js")], binaries=[])
            path = save_manifest(td, custom)
            self.assertEqual(Path(path).name, "mini.json")
            self.assertEqual(load_manifest(td, "mini"), custom)


if __name__ == "__main__":
    unittest.main()
