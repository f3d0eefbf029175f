"""
device_parser.py

User-Agent parsing for analytics: browser, OS and device class via the
user-agents library. Missing agents fall back to "Unknown" / desktop.
"""

import logging
from typing import Dict, Optional

from user_agents import parse

logger = logging.getLogger(__name__)


def _default_device_info() -> Dict[str, str]:
    return {
        "browser": "Unknown",
        "browserVersion": "",
        "os": "Unknown",
        "osVersion": "",
        "deviceType": "desktop",
    }


def _device_type(parsed) -> str:
    if parsed.is_tablet:
        return "tablet"
    if parsed.is_mobile:
        return "mobile"
    return "desktop"


def parse_user_agent(user_agent: Optional[str]) -> Dict[str, str]:
    if not user_agent:
        return _default_device_info()

    parsed = parse(user_agent)

    # ua-parser reports unrecognised families as "Other"
    browser = parsed.browser.family
    os_name = parsed.os.family
    info = {
        "browser": browser if browser and browser != "Other" else "Unknown",
        "browserVersion": parsed.browser.version_string or "",
        "os": os_name if os_name and os_name != "Other" else "Unknown",
        "osVersion": parsed.os.version_string or "",
        "deviceType": _device_type(parsed),
    }
    logger.debug(f"[ua] parsed device={info['deviceType']} browser={info['browser']}")
    return info
