import asyncio
import os

from PySide6.QtCore import Qt, QObject, QThread, Signal
from PySide6.QtWidgets import (
    QMainWindow,
    QWidget,
    QVBoxLayout,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QPushButton,
    QFileDialog,
    QPlainTextEdit,
    QSplitter,
    QMessageBox,
    QProgressBar,
    QRadioButton,
    QButtonGroup,
)

from htmlpackager.config import APP_NAME, APP_VERSION, DEFAULT_RUNTIME_ROOT, OUTPUT_FILENAME
from htmlpackager.core.output import describe_size, write_document
from htmlpackager.core.pipeline import ProjectSource, package_project
from htmlpackager.core.progress import ProgressDisplay
from htmlpackager.models import PackagerConfig

PROGRESS_STEPS = 1000


class _SignalDisplay(ProgressDisplay):
    """Forwards stage updates from the worker thread as Qt signals."""

    def __init__(self, worker):
        self._worker = worker

    def stage_added(self, stage):
        self._worker.stage_added.emit(id(stage), stage.name)

    def stage_updated(self, stage):
        self._worker.stage_updated.emit(id(stage), float(stage.ratio))

    def caption_changed(self, stage):
        self._worker.caption_changed.emit(id(stage), stage.caption)

    def cleared(self):
        self._worker.stages_cleared.emit()


class PackageWorker(QObject):
    stage_added = Signal(object, str)       # stage key, name
    stage_updated = Signal(object, float)   # stage key, ratio 0..1
    caption_changed = Signal(object, str)   # stage key, caption
    stages_cleared = Signal()
    finished = Signal(object)               # OutputDocument
    failed = Signal(str)

    def __init__(self, source, config, runtime_root):
        super().__init__()
        self.source = source
        self.config = config
        self.runtime_root = runtime_root

    def run(self):
        try:
            doc = asyncio.run(
                package_project(
                    self.source,
                    self.config,
                    runtime_root=self.runtime_root,
                    display=_SignalDisplay(self),
                )
            )
        except Exception as e:
            code = getattr(e, "code", type(e).__name__)
            self.failed.emit(f"{code}: {e}")
            return
        self.finished.emit(doc)


class MainWindow(QMainWindow):
    def __init__(self):
        super().__init__()
        self.setWindowTitle(f"{APP_NAME} (v{APP_VERSION})")
        self.setMinimumSize(900, 680)

        # State
        self._thread = None
        self._worker = None
        self._stage_rows = {}
        self._output_path = None
        self._last_written = None

        # --- Root widget
        root = QWidget()
        self.setCentralWidget(root)

        main_layout = QVBoxLayout(root)
        main_layout.setContentsMargins(12, 12, 12, 12)
        main_layout.setSpacing(10)

        # -------------------------
        # Project source
        # -------------------------
        self.rb_id = QRadioButton("Project ID")
        self.rb_file = QRadioButton("Project file")
        self.rb_id.setChecked(True)
        self._source_group = QButtonGroup(self)
        self._source_group.addButton(self.rb_id)
        self._source_group.addButton(self.rb_file)
        self.rb_id.toggled.connect(self._on_source_toggled)

        source_row = QHBoxLayout()
        source_row.addWidget(QLabel("Source:"))
        source_row.addWidget(self.rb_id)
        source_row.addWidget(self.rb_file)
        source_row.addStretch(1)

        self.id_edit = QLineEdit()
        self.id_edit.setPlaceholderText("Project ID (e.g. 104)")

        self.file_edit = QLineEdit()
        self.file_edit.setPlaceholderText("Select a project file (.sb2 / .sb3)...")
        self.btn_file = QPushButton("Browse...")
        self.btn_file.clicked.connect(self.pick_project_file)

        id_row = QHBoxLayout()
        id_row.addWidget(QLabel("ID:"))
        id_row.addWidget(self.id_edit, 1)

        file_row = QHBoxLayout()
        file_row.addWidget(QLabel("File:"))
        file_row.addWidget(self.file_edit, 1)
        file_row.addWidget(self.btn_file)

        main_layout.addLayout(source_row)
        main_layout.addLayout(id_row)
        main_layout.addLayout(file_row)

        # -------------------------
        # Runtime / Output
        # -------------------------
        self.runtime_edit = QLineEdit()
        self.runtime_edit.setText(DEFAULT_RUNTIME_ROOT)
        btn_runtime = QPushButton("Browse...")
        btn_runtime.clicked.connect(self.pick_runtime_folder)

        runtime_row = QHBoxLayout()
        runtime_row.addWidget(QLabel("Runtime:"))
        runtime_row.addWidget(self.runtime_edit, 1)
        runtime_row.addWidget(btn_runtime)

        self.output_edit = QLineEdit()
        self.output_edit.setPlaceholderText(f"Output file (e.g. {OUTPUT_FILENAME})...")
        btn_output = QPushButton("Browse...")
        btn_output.clicked.connect(self.pick_output_file)

        output_row = QHBoxLayout()
        output_row.addWidget(QLabel("Output:"))
        output_row.addWidget(self.output_edit, 1)
        output_row.addWidget(btn_output)

        main_layout.addLayout(runtime_row)
        main_layout.addLayout(output_row)

        # -------------------------
        # Player options
        # -------------------------
        self.loading_text_edit = QLineEdit()
        self.loading_text_edit.setPlaceholderText("Loading text (optional)")

        self.custom_style_edit = QPlainTextEdit()
        self.custom_style_edit.setPlaceholderText("Custom CSS (optional)")
        self.custom_style_edit.setMaximumHeight(80)

        self.post_load_script_edit = QPlainTextEdit()
        self.post_load_script_edit.setPlaceholderText("Post-load JavaScript (optional)")
        self.post_load_script_edit.setMaximumHeight(80)

        main_layout.addWidget(QLabel("Loading text:"))
        main_layout.addWidget(self.loading_text_edit)
        main_layout.addWidget(QLabel("Custom style:"))
        main_layout.addWidget(self.custom_style_edit)
        main_layout.addWidget(QLabel("Post-load script:"))
        main_layout.addWidget(self.post_load_script_edit)

        btn_row = QHBoxLayout()
        btn_row.addStretch(1)
        self.btn_package = QPushButton("Package")
        self.btn_package.clicked.connect(self.on_package_clicked)
        btn_row.addWidget(self.btn_package)
        main_layout.addLayout(btn_row)

        # -------------------------
        # Bottom: Stages + Logs
        # -------------------------
        splitter = QSplitter(Qt.Horizontal)

        stages_panel = QWidget()
        stages_outer = QVBoxLayout(stages_panel)
        stages_outer.setContentsMargins(0, 0, 0, 0)
        stages_outer.addWidget(QLabel("Progress"))
        self.stages_box = QWidget()
        self.stages_layout = QVBoxLayout(self.stages_box)
        self.stages_layout.setContentsMargins(0, 0, 0, 0)
        stages_outer.addWidget(self.stages_box)
        stages_outer.addStretch(1)

        logs_panel = QWidget()
        logs_layout = QVBoxLayout(logs_panel)
        logs_layout.setContentsMargins(0, 0, 0, 0)
        logs_layout.addWidget(QLabel("Log"))
        self.log_box = QPlainTextEdit()
        self.log_box.setReadOnly(True)
        self.log_box.setPlaceholderText("Logs will appear here...")
        logs_layout.addWidget(self.log_box, 1)

        splitter.addWidget(stages_panel)
        splitter.addWidget(logs_panel)
        splitter.setSizes([450, 450])

        main_layout.addWidget(splitter, 1)

        # Stable IDs for UI tests
        self.id_edit.setObjectName("id_edit")
        self.file_edit.setObjectName("file_edit")
        self.runtime_edit.setObjectName("runtime_edit")
        self.output_edit.setObjectName("output_edit")
        self.loading_text_edit.setObjectName("loading_text_edit")
        self.custom_style_edit.setObjectName("custom_style_edit")
        self.post_load_script_edit.setObjectName("post_load_script_edit")
        self.btn_package.setObjectName("btn_package")
        self.log_box.setObjectName("log_box")

        self._on_source_toggled(True)
        self.log("Ready. Choose a project, then Package.")

    # -------------------------
    # UI Helpers
    # -------------------------
    def log(self, msg: str):
        self.log_box.appendPlainText(msg)

    def _on_source_toggled(self, _checked):
        by_id = self.rb_id.isChecked()
        self.id_edit.setEnabled(by_id)
        self.file_edit.setEnabled(not by_id)
        self.btn_file.setEnabled(not by_id)

    def pick_project_file(self):
        path, _ = QFileDialog.getOpenFileName(self, "Select Project", "", "Projects (*.sb2 *.sb3);;All files (*)")
        if path:
            self.file_edit.setText(os.path.normpath(path))
            self.log(f"Project file set: {path}")

    def pick_runtime_folder(self):
        folder = QFileDialog.getExistingDirectory(self, "Select Runtime Folder")
        if folder:
            self.runtime_edit.setText(os.path.normpath(folder))
            self.log(f"Runtime folder set: {folder}")

    def pick_output_file(self):
        path, _ = QFileDialog.getSaveFileName(self, "Save Packaged Project", OUTPUT_FILENAME, "HTML (*.html)")
        if path:
            self.output_edit.setText(os.path.normpath(path))
            self.log(f"Output set: {path}")

    def read_config(self) -> PackagerConfig:
        return PackagerConfig(
            loading_text=self.loading_text_edit.text(),
            post_load_script=self.post_load_script_edit.toPlainText(),
            custom_style=self.custom_style_edit.toPlainText(),
        )

    def _read_source(self):
        if self.rb_id.isChecked():
            project_id = self.id_edit.text().strip()
            if not project_id:
                QMessageBox.warning(self, "Missing Project", "Please enter a project ID.")
                return None
            return ProjectSource.from_id(project_id)

        path = self.file_edit.text().strip()
        if not path or not os.path.isfile(path):
            QMessageBox.warning(self, "Missing Project", "Please choose a valid project file.")
            return None
        return ProjectSource.from_file(path)

    def _require_output(self):
        out = self.output_edit.text().strip()
        if not out:
            QMessageBox.warning(self, "Missing Output", "Please choose an output file.")
            return None
        return out

    # -------------------------
    # Stage rows
    # -------------------------
    def _clear_stages(self):
        for bar, label in self._stage_rows.values():
            bar.deleteLater()
            label.deleteLater()
        self._stage_rows = {}

    def _on_stage_added(self, key, name: str):
        bar = QProgressBar()
        bar.setRange(0, PROGRESS_STEPS)
        bar.setValue(0)
        label = QLabel(name)
        self.stages_layout.addWidget(bar)
        self.stages_layout.addWidget(label)
        self._stage_rows[key] = (bar, label)
        self.log(name)

    def _on_stage_updated(self, key, ratio: float):
        row = self._stage_rows.get(key)
        if row:
            row[0].setValue(int(ratio * PROGRESS_STEPS))

    def _on_caption_changed(self, key, caption: str):
        row = self._stage_rows.get(key)
        if row:
            row[1].setText(caption)

    # -------------------------
    # Package
    # -------------------------
    def on_package_clicked(self):
        source = self._read_source()
        if source is None:
            return
        out = self._require_output()
        if out is None:
            return

        # Snapshot options now; later edits don't affect this run.
        config = self.read_config()
        runtime_root = self.runtime_edit.text().strip() or DEFAULT_RUNTIME_ROOT

        self._clear_stages()
        self.btn_package.setEnabled(False)
        self._output_path = out

        self.log("---- PACKAGING START ----")
        self.log(f"Source:  {source.describe()}")
        self.log(f"Runtime: {runtime_root}")

        self._thread = QThread()
        self._worker = PackageWorker(source, config, runtime_root)
        self._worker.moveToThread(self._thread)

        self._thread.started.connect(self._worker.run)
        self._worker.stage_added.connect(self._on_stage_added)
        self._worker.stage_updated.connect(self._on_stage_updated)
        self._worker.caption_changed.connect(self._on_caption_changed)
        self._worker.stages_cleared.connect(self._clear_stages)
        self._worker.finished.connect(self._on_package_finished)
        self._worker.failed.connect(self._on_package_failed)

        for sig in (self._worker.finished, self._worker.failed):
            sig.connect(self._thread.quit)
            sig.connect(self._worker.deleteLater)
        self._thread.finished.connect(self._thread.deleteLater)

        self._thread.start()

    def _on_package_finished(self, doc):
        self.btn_package.setEnabled(True)
        try:
            written = write_document(doc, self._output_path)
        except OSError as e:
            self.log(f"ERROR: {e}")
            QMessageBox.critical(self, "Save Failed", f"Could not write output:\n{e}")
            return

        self._last_written = written
        self.log(f"Wrote {describe_size(doc)} -> {written}")
        self.log("---- PACKAGING DONE ----")

    def _on_package_failed(self, message: str):
        self.btn_package.setEnabled(True)
        self.log(f"ERROR: {message}")
        self.log("---- PACKAGING FAILED ----")
        QMessageBox.critical(self, "Packaging Failed", f"Error: {message}")
