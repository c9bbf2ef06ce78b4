"""
This module contains the configuration settings for next-run.
It defines the wrapped framework commands, readiness probe timings and the
defaults used when the operator does not pass them on the command line.
"""

import os
from dotenv import find_dotenv, load_dotenv

# Load environment variables from the .env file of the project being run
load_dotenv(find_dotenv(usecwd=True), override=False)

#* --- Project Files ---
PACKAGE_JSON_NAME = "package.json"
ENV_FILE_NAME = os.getenv("NEXT_RUN_ENV_FILE", ".env.local")

#* --- Dev Server Defaults ---
DEFAULT_PORT = int(os.getenv("NEXT_RUN_DEFAULT_PORT", "3000"))
MIN_PORT = 1
MAX_PORT = 65535
LOCAL_HOST = "127.0.0.1"
OPEN_HOST = "0.0.0.0"
# Wildcard bind addresses cannot be connected to, probe and browse these instead.
WILDCARD_HOSTS = {"0.0.0.0", "::"}
PROBE_FALLBACK_HOST = "localhost"

#* --- Wrapped Framework Commands ---
DEV_COMMAND_TEMPLATE = os.getenv("NEXT_RUN_DEV_COMMAND", "npx next dev --port {port} --hostname {host}")
BUILD_COMMAND = os.getenv("NEXT_RUN_BUILD_COMMAND", "npm run build")
START_COMMAND = os.getenv("NEXT_RUN_START_COMMAND", "npm start")

#* --- Readiness Probe Settings ---
PROBE_TIMEOUT = float(os.getenv("NEXT_RUN_PROBE_TIMEOUT", "60"))          # seconds
PROBE_INTERVAL = float(os.getenv("NEXT_RUN_PROBE_INTERVAL", "0.2"))       # seconds between attempts
PROBE_ATTEMPT_TIMEOUT = float(os.getenv("NEXT_RUN_PROBE_ATTEMPT_TIMEOUT", "0.2"))  # per connect

#* --- Application variables ---
PROCESS_TITLE = "next-run"
VERBOSE_LOGGING = os.getenv("NEXT_RUN_VERBOSE", "False").lower() in ('true', '1', 't')
