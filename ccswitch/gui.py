# ccswitch/gui.py
# Desktop window: profile list with switch/edit/delete, add form, processing dialog

import sys
import typing
import logging
from functools import partial

from PySide6.QtCore import Qt, QThread, Signal
from PySide6.QtWidgets import (
    QApplication, QWidget, QHBoxLayout, QVBoxLayout, QLabel, QLineEdit,
    QPushButton, QGroupBox, QMessageBox, QListWidget, QListWidgetItem,
    QDialog, QDialogButtonBox, QProgressBar, QFormLayout
)

from ccswitch.config import load_config, setup_logging
from ccswitch.activation import default_activator
from ccswitch.profiles import ProfileStore, validate_fields

logger = logging.getLogger(__name__)


class Worker(QThread):
    """Runs one store mutation off the GUI thread."""
    done = Signal(object, object)  # result, error

    def __init__(self, fn, parent=None):
        super().__init__(parent)
        self._fn = fn

    def run(self):
        try:
            result = self._fn()
        except Exception as e:  # reported to the user by the done handler
            logger.exception("operation failed")
            self.done.emit(None, e)
            return
        self.done.emit(result, None)


class ProcessingDialog(QDialog):
    def __init__(self, parent=None, message="Working, please wait..."):
        super().__init__(parent)
        self.setWindowTitle("Processing")
        self.setModal(True)
        self.setWindowFlag(Qt.WindowCloseButtonHint, False)
        layout = QVBoxLayout()
        self.setLayout(layout)
        layout.addWidget(QLabel(message))
        bar = QProgressBar()
        bar.setRange(0, 0)  # busy indicator
        layout.addWidget(bar)


class ProfileDialog(QDialog):
    def __init__(self, parent=None, name="", base_url="", token=""):
        super().__init__(parent)
        self.setWindowTitle("Edit profile")
        self.setMinimumSize(500, 200)
        form = QFormLayout()
        self.setLayout(form)

        self.input_name = QLineEdit(name)
        self.input_base_url = QLineEdit(base_url)
        self.input_token = QLineEdit(token)
        self.input_token.setEchoMode(QLineEdit.Password)

        form.addRow("Name", self.input_name)
        form.addRow("BASE_URL", self.input_base_url)
        form.addRow("API Key", self.input_token)

        btns = QDialogButtonBox(QDialogButtonBox.Save | QDialogButtonBox.Cancel)
        form.addRow(btns)
        btns.accepted.connect(self.accept)
        btns.rejected.connect(self.reject)

    def values(self):
        return self.input_name.text(), self.input_base_url.text(), self.input_token.text()


def make_add_group():
    box = QGroupBox("Add profile")
    layout = QVBoxLayout()
    box.setLayout(layout)

    input_name = QLineEdit()
    input_name.setPlaceholderText("Profile name (e.g. production)")
    input_base_url = QLineEdit()
    input_base_url.setPlaceholderText("BASE_URL (e.g. https://api.anthropic.com)")
    input_token = QLineEdit()
    input_token.setPlaceholderText("API Key")
    input_token.setEchoMode(QLineEdit.Password)
    btn_add = QPushButton("Add profile")

    layout.addWidget(input_name)
    layout.addWidget(input_base_url)
    layout.addWidget(input_token)
    layout.addWidget(btn_add)

    return {
        "widget": box,
        "input_name": input_name,
        "input_base_url": input_base_url,
        "input_token": input_token,
        "btn_add": btn_add,
    }


class SwitcherGUI(QWidget):
    def __init__(self, store: ProfileStore):
        super().__init__()
        self.setWindowTitle("Claude Code Config Switcher")
        self.setFixedSize(700, 500)
        self.store = store
        self.worker: typing.Optional[Worker] = None
        self.processing: typing.Optional[ProcessingDialog] = None
        self._on_success = None

        main = QVBoxLayout()
        self.setLayout(main)

        self.lbl_active = QLabel("Active: none")
        self.lbl_active.setTextFormat(Qt.PlainText)
        main.addWidget(self.lbl_active)

        self.list_widget = QListWidget()
        main.addWidget(self.list_widget, 1)

        self.add = make_add_group()
        main.addWidget(self.add["widget"])
        self.add["btn_add"].clicked.connect(self.on_add)

        self.refresh()

    # ----------------- View -----------------
    def refresh(self):
        self.list_widget.clear()
        for i, p in enumerate(self.store.profiles()):
            row = QWidget()
            h = QHBoxLayout()
            h.setContentsMargins(4, 2, 4, 2)
            row.setLayout(h)
            label = QLabel(("✓ " if p.is_active else "") + p.name)
            label.setTextFormat(Qt.PlainText)
            h.addWidget(label, 1)
            for text, slot in (("Switch", self.on_switch), ("Edit", self.on_edit), ("Delete", self.on_delete)):
                btn = QPushButton(text)
                btn.clicked.connect(partial(slot, i))
                h.addWidget(btn)
            item = QListWidgetItem()
            item.setSizeHint(row.sizeHint())
            self.list_widget.addItem(item)
            self.list_widget.setItemWidget(item, row)
        active = self.store.get_active()
        self.lbl_active.setText(f"Active: {active.name}" if active else "Active: none")

    # ----------------- Background work -----------------
    def run_in_background(self, fn, message, on_success):
        self._on_success = on_success
        self.processing = ProcessingDialog(self, message)
        self.processing.show()
        self.worker = Worker(fn, parent=self)
        self.worker.done.connect(self.on_worker_done)
        self.worker.finished.connect(self.worker.deleteLater)
        self.worker.start()

    def on_worker_done(self, result, error):
        if self.processing:
            self.processing.hide()
            self.processing.deleteLater()
            self.processing = None
        self.worker = None
        if error is not None:
            QMessageBox.critical(self, "Error", str(error))
            self.refresh()
            return
        self.refresh()
        self._on_success(result)

    # ----------------- Actions -----------------
    def on_add(self):
        name = self.add["input_name"].text()
        base_url = self.add["input_base_url"].text()
        token = self.add["input_token"].text()
        try:
            validate_fields(name, base_url, token)
            self.store.add(name, base_url, token)
        except (OSError, ValueError) as e:
            QMessageBox.critical(self, "Error", str(e))
            return
        for key in ("input_name", "input_base_url", "input_token"):
            self.add[key].setText("")
        self.refresh()
        QMessageBox.information(self, "Added", f"Profile '{name}' added.\n\nClick 'Switch' to activate it.")

    def on_switch(self, index):
        def done(p):
            QMessageBox.information(
                self, "Switched", f"Switched to profile: {p.name}\n\n{self.store.activator.describe()}"
            )
        self.run_in_background(partial(self.store.switch, index), "Switching profile, please wait...", done)

    def on_edit(self, index):
        try:
            current = self.store.get(index)
        except IndexError as e:
            QMessageBox.critical(self, "Error", str(e))
            return
        dlg = ProfileDialog(self, current.name, current.base_url, current.token)
        if dlg.exec() != QDialog.Accepted:
            return
        name, base_url, token = dlg.values()
        try:
            validate_fields(name, base_url, token)
        except ValueError as e:
            QMessageBox.critical(self, "Error", str(e))
            return

        def done(p):
            if p.is_active:
                msg = f"Profile '{p.name}' updated and re-applied.\n\n{self.store.activator.describe()}"
            else:
                msg = f"Profile '{p.name}' updated."
            QMessageBox.information(self, "Saved", msg)
        self.run_in_background(
            partial(self.store.edit, index, name, base_url, token), "Saving profile, please wait...", done
        )

    def on_delete(self, index):
        try:
            p = self.store.get(index)
        except IndexError as e:
            QMessageBox.critical(self, "Error", str(e))
            return
        confirm = QMessageBox.question(self, "Delete", f"Delete profile '{p.name}'?")
        if confirm != QMessageBox.Yes:
            return
        try:
            self.store.delete(index)
        except (OSError, ValueError, IndexError) as e:
            QMessageBox.critical(self, "Error", str(e))
            return
        self.refresh()
        QMessageBox.information(self, "Deleted", "Profile deleted.")


def run_gui(store: typing.Optional[ProfileStore] = None) -> int:
    app = QApplication.instance() or QApplication(sys.argv)
    if store is None:
        cfg = load_config()
        setup_logging(cfg.get("log_level", "WARNING"))
        try:
            store = ProfileStore(cfg.get("profiles_path"), default_activator(cfg))
        except (OSError, ValueError) as e:
            QMessageBox.critical(None, "Error", f"Failed to load profiles: {e}")
            return 1
    gui = SwitcherGUI(store)
    gui.show()
    return app.exec()


def main():
    sys.exit(run_gui())


if __name__ == "__main__":
    main()
