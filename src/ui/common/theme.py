"""
Centralized theme configuration for the application.

Single source of truth for colors, fonts, spacing and the stylesheet snippets
used by the login, dashboard and playback windows.

Usage:
    from src.ui.common.theme import Colors, Fonts, Spacing, Styles

    label.setStyleSheet(f"color: {Colors.TEXT_PRIMARY};")
    icon = qta.icon('fa5s.play', color=Colors.ACCENT_PRIMARY)
"""
from typing import Optional


class Colors:
    """
    Color palette for the application.

      Backgrounds: #141414 (primary), #1b1b1b (secondary), #232323 (tertiary)
      Borders:     #2e2e2e, #111111 (deep)
      Text:        #e6e6e6 (primary), #9ca3af (secondary), #6b7280 (muted)
      Accent A:    #e11d48 (primary action)
      Accent B:    #4a9eff (secondary/neutral highlights)
    """

    ACCENT_PRIMARY = "#e11d48"
    ACCENT_PRIMARY_HOVER = "#f43f5e"
    ACCENT_PRIMARY_PRESSED = "#be123c"
    ACCENT_SECONDARY = "#4a9eff"

    ACCENT_SUCCESS = "#10b981"
    ACCENT_ERROR = "#ef4444"
    ACCENT_WARNING = "#f59e0b"

    TEXT_PRIMARY = "#e6e6e6"
    TEXT_SECONDARY = "#9ca3af"
    TEXT_MUTED = "#6b7280"
    TEXT_DISABLED = "#666666"
    TEXT_WHITE = "#ffffff"

    BG_BLACK = "#000000"
    BG_PRIMARY = "#141414"
    BG_SECONDARY = "#1b1b1b"
    BG_TERTIARY = "#232323"
    BG_INPUT = "#161616"
    BG_HOVER = "#2e2e2e"
    BG_OVERLAY = "rgba(0, 0, 0, 0.7)"

    BORDER_DEEP = "#111111"
    BORDER_DEFAULT = "#2e2e2e"
    BORDER_LIGHT = "#3a3a3a"

    STATE_DISABLED_BG = "#242424"


class Fonts:
    """Font sizes and weights."""

    FAMILY = '"Fira Sans", "Segoe UI", sans-serif'

    SIZE_XS = 11
    SIZE_SM = 12
    SIZE_MD = 13
    SIZE_LG = 14
    SIZE_XL = 15
    SIZE_XXL = 16
    SIZE_TITLE = 24

    WEIGHT_NORMAL = 400
    WEIGHT_MEDIUM = 500
    WEIGHT_SEMIBOLD = 600
    WEIGHT_BOLD = 700


class Spacing:
    """Spacing and sizing constants."""

    NONE = 0
    XXS = 2
    XS = 4
    SM = 8
    MD = 12
    LG = 16
    XL = 20
    XXL = 24
    XXXL = 40

    RADIUS_SM = 4
    RADIUS_MD = 6
    RADIUS_LG = 8
    RADIUS_XL = 10
    RADIUS_XXL = 12

    ICON_SM = 16
    ICON_MD = 20
    ICON_LG = 24
    ICON_XL = 32

    HEADER_HEIGHT = 64
    CONTROL_HEIGHT = 36
    FORM_WIDTH = 380
    DASHBOARD_SIDEBAR_WIDTH = 360
    LIST_ROW_HEIGHT = 56


class Styles:
    """Pre-built stylesheet snippets for dynamic/programmatic styling."""

    CARD = f"""
        QFrame#card {{
            background-color: {Colors.BG_SECONDARY};
            border: 1px solid {Colors.BORDER_DEFAULT};
            border-radius: {Spacing.RADIUS_XXL}px;
        }}
    """

    HEADER = f"""
        background-color: {Colors.BG_SECONDARY};
        border-bottom: 1px solid {Colors.BORDER_DEEP};
    """

    ERROR_BANNER = f"""
        QLabel {{
            background-color: rgba(239, 68, 68, 0.85);
            color: {Colors.TEXT_WHITE};
            font-size: {Fonts.SIZE_LG}px;
            padding: {Spacing.SM}px {Spacing.MD}px;
            border-radius: {Spacing.RADIUS_MD}px;
        }}
    """

    TAP_HINT = f"""
        QLabel {{
            background-color: rgba(0, 0, 0, 0.5);
            color: {Colors.TEXT_WHITE};
            font-size: {Fonts.SIZE_XS}px;
            padding: 2px {Spacing.SM}px;
            border-radius: {Spacing.RADIUS_SM}px;
        }}
    """

    MEDIA_LIST = f"""
        QListWidget {{
            background-color: {Colors.BG_PRIMARY};
            border: 1px solid {Colors.BORDER_DEFAULT};
            border-radius: {Spacing.RADIUS_LG}px;
            color: {Colors.TEXT_PRIMARY};
            outline: none;
        }}
        QListWidget::item {{
            border-bottom: 1px solid {Colors.BORDER_DEEP};
        }}
        QListWidget::item:selected {{
            background-color: {Colors.BG_TERTIARY};
        }}
    """

    @staticmethod
    def label(
        color: str = Colors.TEXT_PRIMARY,
        size: int = Fonts.SIZE_MD,
        weight: int = Fonts.WEIGHT_NORMAL,
        padding: Optional[int] = None,
        bg: Optional[str] = None,
    ) -> str:
        """Generate label stylesheet with size validation."""
        safe_size = max(1, size) if size else Fonts.SIZE_MD
        style = f"color: {color}; font-size: {safe_size}px; font-weight: {weight};"
        if padding is not None:
            style += f" padding: {padding}px;"
        if bg is not None:
            style += f" background-color: {bg}; border-radius: {Spacing.RADIUS_MD}px;"
        return f"QLabel {{ {style} }}"

    @staticmethod
    def button_primary() -> str:
        """Primary action button style."""
        return f"""
            QPushButton {{
                background-color: {Colors.ACCENT_PRIMARY};
                border: 1px solid {Colors.ACCENT_PRIMARY};
                border-radius: {Spacing.RADIUS_LG}px;
                color: {Colors.TEXT_WHITE};
                font-weight: {Fonts.WEIGHT_SEMIBOLD};
                padding: 9px 18px;
            }}
            QPushButton:hover {{
                background-color: {Colors.ACCENT_PRIMARY_HOVER};
                border-color: {Colors.ACCENT_PRIMARY_HOVER};
            }}
            QPushButton:pressed {{
                background-color: {Colors.ACCENT_PRIMARY_PRESSED};
                border-color: {Colors.ACCENT_PRIMARY_PRESSED};
            }}
            QPushButton:disabled {{
                background-color: {Colors.STATE_DISABLED_BG};
                border-color: {Colors.STATE_DISABLED_BG};
                color: {Colors.TEXT_DISABLED};
            }}
        """

    @staticmethod
    def button_secondary() -> str:
        """Secondary/outline button style."""
        return f"""
            QPushButton {{
                background-color: {Colors.BG_TERTIARY};
                border: 1px solid {Colors.BORDER_DEFAULT};
                border-radius: {Spacing.RADIUS_LG}px;
                color: {Colors.TEXT_PRIMARY};
                padding: 9px 16px;
                font-weight: {Fonts.WEIGHT_MEDIUM};
            }}
            QPushButton:hover {{
                background-color: {Colors.BG_HOVER};
                border-color: {Colors.ACCENT_PRIMARY};
            }}
            QPushButton:disabled {{
                background-color: {Colors.STATE_DISABLED_BG};
                border-color: {Colors.STATE_DISABLED_BG};
                color: {Colors.TEXT_DISABLED};
            }}
        """

    @staticmethod
    def button_overlay() -> str:
        """Translucent buttons drawn over the playing media."""
        return f"""
            QPushButton {{
                background-color: {Colors.BG_OVERLAY};
                border: 1px solid rgba(255, 255, 255, 0.25);
                border-radius: {Spacing.RADIUS_LG}px;
                color: {Colors.TEXT_WHITE};
                padding: 6px 14px;
            }}
            QPushButton:hover {{
                background-color: rgba(0, 0, 0, 0.9);
            }}
        """

    @staticmethod
    def button_flat() -> str:
        """Flat/text button style."""
        return f"""
            QPushButton {{
                background-color: transparent;
                color: {Colors.TEXT_SECONDARY};
                border: none;
                padding: {Spacing.XS}px;
            }}
            QPushButton:hover {{
                color: {Colors.TEXT_PRIMARY};
                background-color: rgba(255, 255, 255, 0.08);
                border-radius: {Spacing.RADIUS_LG}px;
            }}
        """

    @staticmethod
    def input_field() -> str:
        """Text input field style."""
        return f"""
            QLineEdit {{
                background-color: {Colors.BG_INPUT};
                color: {Colors.TEXT_PRIMARY};
                border: 1px solid {Colors.BORDER_DEFAULT};
                border-radius: {Spacing.RADIUS_LG}px;
                padding: 8px 10px;
                selection-background-color: {Colors.ACCENT_PRIMARY};
                selection-color: {Colors.TEXT_WHITE};
            }}
            QLineEdit:focus {{
                border-color: {Colors.ACCENT_PRIMARY};
            }}
            QLineEdit:disabled {{
                background-color: {Colors.STATE_DISABLED_BG};
                color: {Colors.TEXT_DISABLED};
            }}
        """
