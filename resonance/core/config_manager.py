"""
Config Manager for unified configuration management
config.py의 로드/저장과 GenerationSettings 생성을 하나로 묶음
"""
from pathlib import Path
from typing import Any, Dict, Optional

from ..config import (
    CONFIG_PATH,
    DATA_ROOT,
    GenerationSettings,
    build_generation_settings,
    initialize_api_keys,
    load_config as _load_config,
    save_config as _save_config,
)


class ConfigManager:
    """
    설정 관리를 통합한 클래스
    """

    def __init__(self, config_path: Path = CONFIG_PATH, data_root: Path = DATA_ROOT):
        self._config: Optional[Dict[str, Any]] = None
        self._config_path = config_path
        self._data_root = data_root

    @property
    def config_path(self) -> Path:
        return self._config_path

    @property
    def data_root(self) -> Path:
        """JSON 아카이브 디렉토리"""
        return self._data_root

    def load(self) -> Dict[str, Any]:
        """
        설정을 로드합니다.

        Returns:
            설정 딕셔너리 (사본)
        """
        if self._config is None:
            self._config = _load_config(self._config_path)
        return dict(self._config)

    def save(self, config: Optional[Dict[str, Any]] = None) -> None:
        if config is not None:
            self._config = config
        if self._config is not None:
            _save_config(self._config, self._config_path)

    def get(self, key: str, default: Any = None) -> Any:
        if self._config is None:
            self.load()
        return self._config.get(key, default)

    def set(self, key: str, value: Any) -> None:
        if self._config is None:
            self.load()
        self._config[key] = value

    def generation_settings(self) -> GenerationSettings:
        """
        현재 설정에서 GenerationSettings를 만듭니다.

        Returns:
            GenerationSettings 인스턴스
        """
        return build_generation_settings(self.load())

    def setup_gemini_api(self) -> Optional[str]:
        """
        Gemini API를 설정합니다.
        """
        return initialize_api_keys(self.load())
