from .user import User
from .estimate import Estimate, Section, Item
from .view import View, ViewSectionSetting, ViewItemSetting
from .version import (
    Version,
    VersionSection,
    VersionItem,
    VersionView,
    VersionViewSectionSetting,
    VersionViewItemSetting,
)

__all__ = [
    "User",
    "Estimate",
    "Section",
    "Item",
    "View",
    "ViewSectionSetting",
    "ViewItemSetting",
    "Version",
    "VersionSection",
    "VersionItem",
    "VersionView",
    "VersionViewSectionSetting",
    "VersionViewItemSetting",
]
