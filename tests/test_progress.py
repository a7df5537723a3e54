import unittest

from htmlpackager.core.progress import LoggingDisplay, ProgressBoard, ProgressDisplay, ProgressStage


class RecordingDisplay(ProgressDisplay):
    def __init__(self):
        self.events = []

    def stage_added(self, stage):
        self.events.append(("added", stage.name))

    def stage_updated(self, stage):
        self.events.append(("updated", stage.name, stage.completed, stage.total))

    def caption_changed(self, stage):
        self.events.append(("caption", stage.name, stage.caption))

    def cleared(self):
        self.events.append(("cleared",))


class TestProgressStage(unittest.TestCase):
    def test_zero_total_has_zero_ratio(self):
        stage = ProgressStage("Loading")
        self.assertEqual(stage.total, 0)
        self.assertEqual(stage.ratio, 0)

    def test_counters_notify_display(self):
        display = RecordingDisplay()
        stage = ProgressStage("Loading", display)
        stage.total += 1
        stage.total += 1
        stage.completed += 1

        self.assertEqual(stage.ratio, 0.5)
        self.assertEqual(
            display.events,
            [
                ("updated", "Loading", 0, 1),
                ("updated", "Loading", 0, 2),
                ("updated", "Loading", 1, 2),
            ],
        )

    def test_finish_sets_both_counters_in_one_update(self):
        display = RecordingDisplay()
        stage = ProgressStage("Loading", display)
        stage.total = 5
        stage.completed = 2
        display.events.clear()

        stage.finish()

        self.assertEqual(stage.ratio, 1)
        self.assertEqual(display.events, [("updated", "Loading", 1, 1)])

    def test_percent(self):
        stage = ProgressStage("Archive")
        stage.percent(0.25)
        self.assertEqual(stage.total, 1)
        self.assertEqual(stage.ratio, 0.25)

        with self.assertRaises(ValueError):
            stage.percent(1.5)

    def test_completed_cannot_exceed_total(self):
        stage = ProgressStage("Loading")
        stage.total = 2
        with self.assertRaises(ValueError):
            stage.completed = 3
        stage.completed = 2
        with self.assertRaises(ValueError):
            stage.total = 1

    def test_caption(self):
        display = RecordingDisplay()
        stage = ProgressStage("Archive", display)
        stage.caption = "project.json"
        self.assertEqual(display.events, [("caption", "Archive", "project.json")])


class TestProgressBoard(unittest.TestCase):
    def test_new_stage_returns_handle_and_becomes_current(self):
        display = RecordingDisplay()
        board = ProgressBoard(display)
        self.assertIsNone(board.current)

        a = board.new_stage("A")
        b = board.new_stage("B")

        self.assertIs(board.current, b)
        self.assertEqual(board.stages, [a, b])
        self.assertEqual(display.events, [("added", "A"), ("added", "B")])

        # The older handle still reports under its own name.
        a.finish()
        self.assertEqual(display.events[-1], ("updated", "A", 1, 1))

    def test_reset_detaches_stages(self):
        display = RecordingDisplay()
        board = ProgressBoard(display)
        old = board.new_stage("Old")

        board.reset()
        old.finish()

        self.assertEqual(board.stages, [])
        self.assertEqual(display.events, [("added", "Old"), ("cleared",)])
        self.assertEqual(old.ratio, 1)


class TestLoggingDisplay(unittest.TestCase):
    def test_finished_is_logged_once_per_stage(self):
        board = ProgressBoard(LoggingDisplay())
        stage = board.new_stage("Reading project")

        with self.assertLogs("htmlpackager.core.progress", level="INFO") as logs:
            stage.percent(0.5)
            stage.percent(1)
            stage.percent(1)
            stage.finish()

        finished = [line for line in logs.output if "Finished: Reading project" in line]
        self.assertEqual(len(finished), 1)


if __name__ == "__main__":
    unittest.main()
