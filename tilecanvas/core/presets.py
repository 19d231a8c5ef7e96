"""
Preset management - brush presets and persisted canvas settings
"""
import json
from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field
from pathlib import Path

from .brush import Brush
from .logging import log


SETTINGS_FILE_NAME = "settings.json"


@dataclass
class CanvasSettings:
    """
    User-tunable canvas configuration.

    fixed_rows / fixed_columns of 0 mean "free layout from the preferred
    tile size". random_source_indices of None means every source may be
    drawn by random picks.
    """
    allow_edge_connections: bool = False
    random_requires_legal: bool = False
    mirror_horizontal: bool = False
    mirror_vertical: bool = False
    grid_gap: int = 0
    preferred_tile_size: int = 48
    fixed_rows: int = 0
    fixed_columns: int = 0
    random_source_indices: Optional[List[int]] = None

    def to_json(self) -> Dict[str, Any]:
        return {
            'allow_edge_connections': self.allow_edge_connections,
            'random_requires_legal': self.random_requires_legal,
            'mirror_horizontal': self.mirror_horizontal,
            'mirror_vertical': self.mirror_vertical,
            'grid_gap': self.grid_gap,
            'preferred_tile_size': self.preferred_tile_size,
            'fixed_rows': self.fixed_rows,
            'fixed_columns': self.fixed_columns,
            'random_source_indices': (list(self.random_source_indices)
                                      if self.random_source_indices is not None else None),
        }

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> 'CanvasSettings':
        """Missing keys take their defaults"""
        defaults = cls()
        indices = data.get('random_source_indices')
        if indices is not None:
            indices = [int(i) for i in indices]
        return cls(
            allow_edge_connections=bool(data.get('allow_edge_connections', defaults.allow_edge_connections)),
            random_requires_legal=bool(data.get('random_requires_legal', defaults.random_requires_legal)),
            mirror_horizontal=bool(data.get('mirror_horizontal', defaults.mirror_horizontal)),
            mirror_vertical=bool(data.get('mirror_vertical', defaults.mirror_vertical)),
            grid_gap=int(data.get('grid_gap', defaults.grid_gap)),
            preferred_tile_size=int(data.get('preferred_tile_size', defaults.preferred_tile_size)),
            fixed_rows=int(data.get('fixed_rows', defaults.fixed_rows)),
            fixed_columns=int(data.get('fixed_columns', defaults.fixed_columns)),
            random_source_indices=indices,
        )


@dataclass
class BrushPreset:
    """A named brush"""
    name: str
    brush: Brush = field(default_factory=Brush)

    def to_json(self) -> Dict[str, Any]:
        return {'name': self.name, 'brush': self.brush.to_json()}

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> 'BrushPreset':
        """
        Raises:
            ValueError: Missing name or malformed brush
        """
        name = data.get('name') if isinstance(data, dict) else None
        if not isinstance(name, str) or not name:
            raise ValueError("Preset needs a non-empty 'name'")
        return cls(name, Brush.from_json(data.get('brush', {})))


class PresetManager:
    """
    Manages brush presets - both builtin and user-defined - plus the
    user's CanvasSettings file.
    """

    def __init__(self, builtin_dir: str, user_dir: str):
        """
        Initialize the preset manager.

        Args:
            builtin_dir: Directory of read-only presets shipped with the app
            user_dir: Directory for user presets and settings.json
        """
        self.builtin_dir = Path(builtin_dir)
        self.user_dir = Path(user_dir)

        self.user_dir.mkdir(parents=True, exist_ok=True)

        self._builtin_cache: Dict[str, BrushPreset] = {}
        self._user_cache: Dict[str, BrushPreset] = {}

    def _load_dir(self, directory: Path, label: str) -> Dict[str, BrushPreset]:
        presets = {}
        if not directory.exists():
            return presets
        for json_file in sorted(directory.glob('*.json')):
            if json_file.name == SETTINGS_FILE_NAME:
                continue
            try:
                with open(json_file, 'r', encoding='utf-8') as f:
                    preset = BrushPreset.from_json(json.load(f))
                presets[preset.name] = preset
            except (OSError, json.JSONDecodeError, ValueError) as e:
                log(f"Error loading {label} preset {json_file}: {e}", "[Presets]")
        return presets

    def load_builtin_presets(self) -> Dict[str, BrushPreset]:
        """
        Load all builtin presets.

        Returns:
            Dictionary mapping preset names to BrushPreset instances
        """
        if not self._builtin_cache:
            self._builtin_cache = self._load_dir(self.builtin_dir, "builtin")
        return self._builtin_cache

    def load_user_presets(self) -> Dict[str, BrushPreset]:
        if not self._user_cache:
            self._user_cache = self._load_dir(self.user_dir, "user")
        return self._user_cache

    def get_all_presets(self) -> Dict[str, BrushPreset]:
        """All presets, user presets shadowing builtin ones of the same name"""
        all_presets = {}
        all_presets.update(self.load_builtin_presets())
        all_presets.update(self.load_user_presets())
        return all_presets

    def get_preset(self, name: str) -> Optional[BrushPreset]:
        return self.get_all_presets().get(name)

    def list_presets(self) -> List[str]:
        return sorted(self.get_all_presets().keys())

    def save_preset(self, preset: BrushPreset) -> bool:
        """
        Save a preset to the user directory.

        Returns:
            True if successful, False otherwise
        """
        try:
            self.user_dir.mkdir(parents=True, exist_ok=True)
            file_path = self.user_dir / f"{preset.name}.json"
            with open(file_path, 'w', encoding='utf-8') as f:
                json.dump(preset.to_json(), f, indent=2)
        except OSError as e:
            log(f"Error saving preset {preset.name}: {e}", "[Presets]")
            return False
        self.load_user_presets()
        self._user_cache[preset.name] = preset
        return True

    def delete_preset(self, name: str) -> bool:
        """
        Delete a user-defined preset. Builtin presets cannot be deleted.

        Returns:
            True if a file was removed
        """
        file_path = self.user_dir / f"{name}.json"
        if not file_path.exists():
            return False
        try:
            file_path.unlink()
        except OSError as e:
            log(f"Error deleting preset {name}: {e}", "[Presets]")
            return False
        self._user_cache.pop(name, None)
        return True

    def clear_cache(self) -> None:
        """Clear the preset cache (forces reload on next access)."""
        self._builtin_cache.clear()
        self._user_cache.clear()

    # =========================================================================
    # Canvas settings
    # =========================================================================

    @property
    def settings_path(self) -> Path:
        return self.user_dir / SETTINGS_FILE_NAME

    def load_settings(self) -> CanvasSettings:
        """Read settings.json; defaults when it is missing or unreadable"""
        if not self.settings_path.exists():
            return CanvasSettings()
        try:
            with open(self.settings_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            return CanvasSettings.from_json(data if isinstance(data, dict) else {})
        except (OSError, json.JSONDecodeError, TypeError, ValueError) as e:
            log(f"Error loading settings {self.settings_path}: {e}", "[Presets]")
            return CanvasSettings()

    def save_settings(self, settings: CanvasSettings) -> bool:
        try:
            self.user_dir.mkdir(parents=True, exist_ok=True)
            with open(self.settings_path, 'w', encoding='utf-8') as f:
                json.dump(settings.to_json(), f, indent=2)
        except OSError as e:
            log(f"Error saving settings: {e}", "[Presets]")
            return False
        return True
