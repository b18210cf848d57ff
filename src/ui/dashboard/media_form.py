"""Submission form for new media records."""
import logging

from PyQt6.QtCore import Qt, pyqtSignal
from PyQt6.QtWidgets import (QFrame, QVBoxLayout, QHBoxLayout, QLabel, QLineEdit,
                             QPushButton, QRadioButton, QButtonGroup)

from src.core.dto.media import MediaType
from src.core.errors import ValidationError
from src.core.media_validation import validate_submission
from src.ui.common.theme import Colors, Fonts, Spacing, Styles

logger = logging.getLogger(__name__)

_URL_HINTS = {
    MediaType.VIDEO: (
        "Video URL",
        "YouTube, Canva or any direct video link",
        "Accepts YouTube links and any other video host",
    ),
    MediaType.IMAGE: (
        "Image URL",
        "Direct image link (site.com/picture.jpg)",
        "Accepts direct image URLs (.jpg, .png, ...) and hosts like Canva or postimg.cc",
    ),
}


class MediaForm(QFrame):
    """
    Validates input on the UI thread and emits ``submitted(title, url, type)``
    with the normalized url. The dashboard does the repository write.
    """

    submitted = pyqtSignal(str, str, object)

    def __init__(self, parent=None):
        super().__init__(parent)
        self.setObjectName("card")
        self.setStyleSheet(Styles.CARD)

        layout = QVBoxLayout(self)
        layout.setContentsMargins(Spacing.XL, Spacing.XL, Spacing.XL, Spacing.XL)
        layout.setSpacing(Spacing.SM)

        heading = QLabel("Add new media")
        heading.setStyleSheet(Styles.label(Colors.TEXT_PRIMARY, Fonts.SIZE_XXL, Fonts.WEIGHT_SEMIBOLD))
        layout.addWidget(heading)

        type_row = QHBoxLayout()
        self.type_group = QButtonGroup(self)
        self.video_radio = QRadioButton("Video")
        self.image_radio = QRadioButton("Image")
        self.video_radio.setChecked(True)
        for radio in (self.video_radio, self.image_radio):
            radio.setStyleSheet(f"color: {Colors.TEXT_PRIMARY};")
            self.type_group.addButton(radio)
            type_row.addWidget(radio)
        type_row.addStretch()
        self.type_group.buttonToggled.connect(lambda *_: self._update_hints())
        layout.addLayout(type_row)

        layout.addWidget(self._field_label("Title"))
        self.title_input = QLineEdit()
        self.title_input.setPlaceholderText("Enter a title")
        self.title_input.setStyleSheet(Styles.input_field())
        layout.addWidget(self.title_input)

        self.url_label = self._field_label("")
        layout.addWidget(self.url_label)
        self.url_input = QLineEdit()
        self.url_input.setStyleSheet(Styles.input_field())
        self.url_input.returnPressed.connect(self._submit)
        layout.addWidget(self.url_input)

        self.url_hint = QLabel()
        self.url_hint.setWordWrap(True)
        self.url_hint.setStyleSheet(Styles.label(Colors.TEXT_MUTED, Fonts.SIZE_XS))
        layout.addWidget(self.url_hint)

        self.error_label = QLabel()
        self.error_label.setWordWrap(True)
        self.error_label.setStyleSheet(Styles.label(Colors.ACCENT_ERROR, Fonts.SIZE_SM))
        self.error_label.hide()
        layout.addWidget(self.error_label)

        self.submit_btn = QPushButton("Add media")
        self.submit_btn.setStyleSheet(Styles.button_primary())
        self.submit_btn.setCursor(Qt.CursorShape.PointingHandCursor)
        self.submit_btn.clicked.connect(self._submit)
        layout.addWidget(self.submit_btn)

        self._update_hints()

    @staticmethod
    def _field_label(text: str) -> QLabel:
        label = QLabel(text)
        label.setStyleSheet(Styles.label(Colors.TEXT_SECONDARY, Fonts.SIZE_SM, Fonts.WEIGHT_MEDIUM))
        return label

    @property
    def media_type(self) -> MediaType:
        return MediaType.IMAGE if self.image_radio.isChecked() else MediaType.VIDEO

    def _update_hints(self):
        label, placeholder, hint = _URL_HINTS[self.media_type]
        self.url_label.setText(label)
        self.url_input.setPlaceholderText(placeholder)
        self.url_hint.setText(hint)

    def _submit(self):
        title = self.title_input.text().strip()
        try:
            url = validate_submission(title, self.url_input.text(), self.media_type)
        except ValidationError as e:
            self.error_label.setText(str(e))
            self.error_label.show()
            target = self.title_input if e.field == "title" else self.url_input
            target.setFocus()
            return
        self.error_label.hide()
        self.submitted.emit(title, url, self.media_type)

    def set_busy(self, busy: bool):
        self.submit_btn.setEnabled(not busy)
        self.submit_btn.setText("Adding..." if busy else "Add media")

    def reset(self):
        self.title_input.clear()
        self.url_input.clear()
        self.error_label.hide()
