from cdc_control.config.settings import CDCSettings, get_settings

__all__ = ["CDCSettings", "get_settings"]
