import json
import unittest

import httpx

from htmlpackager.core.downloader import RemoteProjectDownloader, number_sb2_assets, sb3_asset_names
from htmlpackager.core.fetching import Fetcher
from htmlpackager.core.progress import ProgressStage
from htmlpackager.core.project import ProjectResolver
from htmlpackager.errors import FetchError, ParseError
from htmlpackager.models import ProjectFormat

SB3_PROJECT = {
    "targets": [
        {
            "isStage": True,
            "costumes": [{"assetId": "aaa", "md5ext": "aaa.svg", "dataFormat": "svg"}],
            "sounds": [],
        },
        {
            "isStage": False,
            "costumes": [
                {"assetId": "bbb", "md5ext": "bbb.png", "dataFormat": "png"},
                {"assetId": "aaa", "md5ext": "aaa.svg", "dataFormat": "svg"},
            ],
            "sounds": [{"assetId": "ccc", "dataFormat": "wav"}],
        },
    ],
}


def _sb2_project():
    return {
        "objName": "Stage",
        "penLayerMD5": "pen.png",
        "costumes": [{"costumeName": "backdrop1", "baseLayerMD5": "bg.svg"}],
        "sounds": [{"soundName": "pop", "md5": "pop.wav"}],
        "children": [
            {
                "objName": "Sprite1",
                "costumes": [
                    {"costumeName": "c1", "baseLayerMD5": "c1.svg", "textLayerMD5": "t1.png"},
                    {"costumeName": "c2", "baseLayerMD5": "bg.svg"},
                ],
                "sounds": [{"soundName": "meow", "md5": "meow.wav"}],
            },
            {"target": "Sprite1", "cmd": "getVar:", "param": "x"},
        ],
    }


class TestAssetNaming(unittest.TestCase):
    def test_sb3_asset_names_are_unique_and_ordered(self):
        self.assertEqual(sb3_asset_names(SB3_PROJECT), ["aaa.svg", "bbb.png", "ccc.wav"])

    def test_sb2_numbering(self):
        project = _sb2_project()
        images, sounds = number_sb2_assets(project)

        self.assertEqual(images, {"pen.png": 0, "bg.svg": 1, "c1.svg": 2, "t1.png": 3})
        self.assertEqual(sounds, {"pop.wav": 0, "meow.wav": 1})
        sprite = project["children"][0]
        self.assertEqual(project["penLayerID"], 0)
        self.assertEqual(sprite["costumes"][0]["baseLayerID"], 2)
        self.assertEqual(sprite["costumes"][0]["textLayerID"], 3)
        self.assertEqual(sprite["costumes"][1]["baseLayerID"], 1)
        self.assertEqual(sprite["sounds"][0]["soundID"], 1)
        self.assertNotIn("baseLayerID", project["children"][1])

    def test_sb3_asset_without_id_is_a_parse_error(self):
        project = {"targets": [{"name": "Sprite1", "costumes": [{"name": "x"}]}]}
        with self.assertRaises(ParseError) as ctx:
            sb3_asset_names(project)
        self.assertIn("Sprite1", str(ctx.exception))
        self.assertIn("assetId", str(ctx.exception))

    def test_sb3_targets_must_be_objects(self):
        for project in ({"targets": "nope"}, {"targets": [1]}, {"targets": [{"sounds": {}}]}):
            with self.assertRaises(ParseError):
                sb3_asset_names(project)

    def test_sb2_entries_without_md5_are_parse_errors(self):
        no_costume_md5 = _sb2_project()
        del no_costume_md5["children"][0]["costumes"][1]["baseLayerMD5"]
        no_sound_md5 = _sb2_project()
        no_sound_md5["sounds"] = [{"soundName": "pop"}]
        bad_children = _sb2_project()
        bad_children["children"] = {"objName": "x"}

        for project in (no_costume_md5, no_sound_md5, bad_children):
            with self.assertRaises(ParseError):
                number_sb2_assets(project)


class TestRemoteDownloader(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.project_body = json.dumps(SB3_PROJECT).encode("utf-8")
        self.missing = set()
        self.client = httpx.AsyncClient(transport=httpx.MockTransport(self._handler))
        self.fetcher = Fetcher("https://runtime.test/", client=self.client)
        self.downloader = RemoteProjectDownloader(
            self.fetcher,
            project_host="https://projects.test",
            asset_url_template="https://assets.test/{md5ext}",
        )

    async def asyncTearDown(self):
        await self.client.aclose()

    def _handler(self, request):
        if request.url.host == "projects.test":
            return httpx.Response(200, content=self.project_body)
        name = request.url.path.lstrip("/")
        if name in self.missing:
            return httpx.Response(404)
        return httpx.Response(200, content=f"data:{name}".encode("utf-8"))

    async def test_sb3(self):
        stage = ProgressStage("Loading project")
        result = await self.downloader.download("104", ProjectFormat.SB3, stage)

        self.assertEqual(result.type, "zip")
        self.assertEqual([f.path for f in result.files], ["project.json", "aaa.svg", "bbb.png", "ccc.wav"])
        self.assertEqual(result.files[0].data, self.project_body)
        self.assertEqual(result.files[2].data, b"data:bbb.png")
        self.assertEqual(stage.total, 4)
        self.assertEqual(stage.ratio, 1)

    async def test_sb2(self):
        self.project_body = json.dumps(_sb2_project()).encode("utf-8")
        result = await self.downloader.download("104", ProjectFormat.SB2)

        paths = [f.path for f in result.files]
        self.assertEqual(paths, ["project.json", "0.png", "1.svg", "2.svg", "3.png", "0.wav", "1.wav"])
        self.assertEqual(result.files[2].data, b"data:bg.svg")
        project = json.loads(result.files[0].data)
        self.assertEqual(project["costumes"][0]["baseLayerID"], 1)

    async def test_missing_asset(self):
        self.missing.add("bbb.png")
        with self.assertRaises(FetchError):
            await self.downloader.download("104", ProjectFormat.SB3)

    async def test_classified_project_with_bad_assets_is_a_parse_error(self):
        self.project_body = b'{"targets": [{"costumes": [{"name": "x"}]}]}'
        resolver = ProjectResolver(self.fetcher, downloader=self.downloader, project_host="https://projects.test")

        with self.assertRaises(ParseError):
            await resolver.resolve_by_id("1")

    async def test_project_body_must_be_an_object(self):
        self.project_body = b"[1, 2]"
        with self.assertRaises(ParseError):
            await self.downloader.download("104", ProjectFormat.SB3)


if __name__ == "__main__":
    unittest.main()
