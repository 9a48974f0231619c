# SPDX-License-Identifier: MIT
"""Allow running as ``python -m gltf_geo``."""

import sys

from gltf_geo.cli import main

sys.exit(main())
