"""PySide6 window for the crash symbolicator.

Pick (or drop) a .dSYM bundle and a crash file, press "Parse Crash File" and
the symbolicated report appears in the text view. The pipeline runs on a
QThread so the window stays responsive while atos is working.
"""
import os
import sys
import traceback

from PySide6 import QtCore
from PySide6.QtCore import Qt, Signal, QThread
from PySide6.QtWidgets import (
    QApplication, QFileDialog, QTextEdit, QPushButton, QLabel,
    QHBoxLayout, QVBoxLayout, QWidget, QProgressBar, QGroupBox, QTabWidget,
)

from crash_symbolicator.config import Settings
from crash_symbolicator.exceptions import SymbolicationCancelled, SymbolicatorError
from crash_symbolicator.pipeline import SymbolicationPipeline


class OutputRedirector:
    """Redirects stdout/stderr to a QTextEdit widget in a thread-safe manner."""

    def __init__(self, text_widget, original_stream):
        self.text_widget = text_widget
        self.original_stream = original_stream

    def write(self, text):
        if self.original_stream:
            try:
                self.original_stream.write(text)
                self.original_stream.flush()
            except Exception:
                pass  # original stream closed

        if text and text.strip():
            try:
                QtCore.QMetaObject.invokeMethod(
                    self.text_widget,
                    "append",
                    Qt.QueuedConnection,
                    QtCore.Q_ARG(str, text.rstrip())
                )
            except RuntimeError:
                pass  # widget deleted

    def flush(self):
        if self.original_stream:
            try:
                self.original_stream.flush()
            except Exception:
                pass


class SymbolicationWorker(QThread):
    """Background worker running the symbolication pipeline."""
    finished = Signal(str)  # Emits the symbolicated crash text
    progress = Signal(str)  # Emits status messages
    error = Signal(str)

    def __init__(self, pipeline, crash_file, dsym_bundle):
        super().__init__()
        self.pipeline = pipeline
        self.crash_file = crash_file
        self.dsym_bundle = dsym_bundle
        self._cancel_requested = False
        self.pipeline.set_progress_callback(self._on_progress)
        self.pipeline.set_abort_check(lambda: self._cancel_requested)

    def request_cancel(self) -> None:
        """Request that the running symbolication stop before the next address."""
        self._cancel_requested = True

    def _on_progress(self, message: str, current: int, total: int) -> None:
        self.progress.emit(message)

    def run(self):
        try:
            self.progress.emit(f"Symbolicating {os.path.basename(self.crash_file)}...")
            text = self.pipeline.run(self.crash_file, self.dsym_bundle)
            self.progress.emit("Symbolication complete!")
            self.finished.emit(text)
        except SymbolicationCancelled:
            self.progress.emit("Symbolication cancelled.")
            self.finished.emit("")
        except SymbolicatorError as e:
            self.error.emit(str(e))
        except Exception as e:
            self.error.emit(f"{e}\n\nTraceback:\n{traceback.format_exc()}")


class FileDropRow(QWidget):
    """Label + select button that also accepts a dropped file URL."""
    path_changed = Signal(str)

    def __init__(self, placeholder, button_text, select_directory=False, parent=None):
        super().__init__(parent)
        self.placeholder = placeholder
        self.select_directory = select_directory
        self.path = ""
        self.setAcceptDrops(True)

        self.label = QLabel(placeholder)
        self.label.setStyleSheet("color: gray;")
        self.button = QPushButton(button_text)
        self.button.clicked.connect(self.select)

        row = QHBoxLayout()
        row.setContentsMargins(0, 0, 0, 0)
        row.addWidget(self.label, 1)
        row.addWidget(self.button)
        self.setLayout(row)

    def select(self):
        if self.select_directory:
            path = QFileDialog.getExistingDirectory(self, self.button.text())
        else:
            path, _ = QFileDialog.getOpenFileName(
                self, self.button.text(), "", "Crash reports (*.crash *.ips *.txt);;All files (*)"
            )
        if path:
            self.set_path(path)

    def set_path(self, path):
        self.path = path
        self.label.setText(path if path else self.placeholder)
        self.label.setStyleSheet("" if path else "color: gray;")
        self.path_changed.emit(path)

    def dragEnterEvent(self, event):
        if event.mimeData().hasUrls():
            event.acceptProposedAction()

    def dropEvent(self, event):
        urls = event.mimeData().urls()
        if urls and urls[0].isLocalFile():
            self.set_path(urls[0].toLocalFile())
            event.acceptProposedAction()


class SymbolicatorGUI(QWidget):
    """Main window: dSYM + crash file in, symbolicated crash text out."""

    def __init__(self, settings=None):
        super().__init__()
        self.setWindowTitle('Crash Symbolicator')
        self.resize(1000, 720)
        self.settings = settings or Settings.from_env()
        self.worker = None
        self._running = False
        self._build_ui()
        self._setup_output_redirection()

    def _build_ui(self):
        main_layout = QVBoxLayout()

        file_group = QGroupBox("Files")
        file_layout = QVBoxLayout()
        self.dsym_row = FileDropRow("Select or drop a .dSYM bundle", "Select dSYM", select_directory=True)
        self.crash_row = FileDropRow("Select or drop a crash file (.crash, .ips, .txt)", "Select Crash File")
        self.dsym_row.path_changed.connect(self._update_buttons)
        self.crash_row.path_changed.connect(self._update_buttons)
        file_layout.addWidget(self.dsym_row)
        file_layout.addWidget(self.crash_row)
        file_group.setLayout(file_layout)
        main_layout.addWidget(file_group)

        button_row = QHBoxLayout()
        self.parse_btn = QPushButton("Parse Crash File")
        self.parse_btn.setEnabled(False)
        self.parse_btn.clicked.connect(self.parse_crash_file)
        button_row.addWidget(self.parse_btn)
        self.cancel_btn = QPushButton("Cancel")
        self.cancel_btn.setEnabled(False)
        self.cancel_btn.clicked.connect(self.cancel)
        button_row.addWidget(self.cancel_btn)
        self.copy_btn = QPushButton("Copy Output")
        self.copy_btn.clicked.connect(self.copy_output)
        button_row.addWidget(self.copy_btn)
        main_layout.addLayout(button_row)

        self.progress_bar = QProgressBar()
        self.progress_bar.setRange(0, 0)
        self.progress_bar.setVisible(False)
        main_layout.addWidget(self.progress_bar)

        self.tabs = QTabWidget()
        self.output_text = QTextEdit()
        self.output_text.setReadOnly(True)
        self.output_text.setLineWrapMode(QTextEdit.NoWrap)
        self.tabs.addTab(self.output_text, "Symbolicated")
        self.console_text = QTextEdit()
        self.console_text.setReadOnly(True)
        self.tabs.addTab(self.console_text, "Console")
        main_layout.addWidget(self.tabs, 1)

        self.status_label = QLabel("Ready")
        main_layout.addWidget(self.status_label)

        self.setLayout(main_layout)

    def _setup_output_redirection(self):
        """Mirror stdout and stderr into the console tab."""
        self._original_stdout = sys.stdout
        self._original_stderr = sys.stderr
        sys.stdout = OutputRedirector(self.console_text, self._original_stdout)
        sys.stderr = OutputRedirector(self.console_text, self._original_stderr)

    def closeEvent(self, event):
        if self.worker is not None and self.worker.isRunning():
            self.worker.request_cancel()
            self.worker.wait()
        sys.stdout = self._original_stdout
        sys.stderr = self._original_stderr
        event.accept()

    def _update_buttons(self, *_):
        self.parse_btn.setEnabled(bool(self.dsym_row.path and self.crash_row.path) and not self._running)
        self.cancel_btn.setEnabled(self._running)

    def parse_crash_file(self):
        if not self.dsym_row.path or not self.crash_row.path:
            self.status_label.setText("Please select both dSYM and Crash files")
            return

        pipeline = SymbolicationPipeline.from_settings(self.settings)
        self.worker = SymbolicationWorker(pipeline, self.crash_row.path, self.dsym_row.path)
        self.worker.progress.connect(self.status_label.setText)
        self.worker.finished.connect(self._on_finished)
        self.worker.error.connect(self._on_error)

        self.output_text.clear()
        self.progress_bar.setVisible(True)
        self._running = True
        self.worker.start()
        self._update_buttons()

    def cancel(self):
        if self.worker is not None:
            self.worker.request_cancel()
            self.status_label.setText("Cancelling...")

    def _on_finished(self, text):
        self._running = False
        self.progress_bar.setVisible(False)
        if text:
            self.output_text.setPlainText(text)
        self._update_buttons()

    def _on_error(self, message):
        self._running = False
        self.progress_bar.setVisible(False)
        self.output_text.setPlainText(message)
        self.status_label.setText("Symbolication failed")
        self._update_buttons()

    def copy_output(self):
        text = self.output_text.toPlainText()
        if not text:
            self.status_label.setText("No output to copy")
            return
        QApplication.clipboard().setText(text)
        self.status_label.setText("Output copied to clipboard")


def main():
    app = QApplication.instance() or QApplication(sys.argv)
    app.setApplicationName("Crash Symbolicator")
    gui = SymbolicatorGUI()
    gui.show()
    app.exec()


if __name__ == "__main__":
    main()
