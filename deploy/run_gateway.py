#!/usr/bin/env python3
"""Start the tenancy gateway in a container; store, signing key and token lifetime come from TENANCY_* env vars."""
import os
import sys
import logging

sys.path.insert(0, os.environ.get("APP_ROOT", "/app"))
logging.basicConfig(level=logging.INFO)

from tenancy_core.config import get_settings
from tenancy_core.core import build_platform
from tenancy_core.gateway.app import create_app

settings = get_settings()
platform = build_platform(settings)
report = platform.reconcile(repair=False)
if not report.clean:
    logging.warning("tenancy store needs repair: %s", report.to_dict())

app = create_app(platform)
port = int(os.environ.get("GATEWAY_PORT", "8000"))
app.run(host="0.0.0.0", port=port)
