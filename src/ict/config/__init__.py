from ict.config.loader import app_config_to_dict, load_app_config
from ict.config.models import AppConfig

__all__ = ["AppConfig", "app_config_to_dict", "load_app_config"]
