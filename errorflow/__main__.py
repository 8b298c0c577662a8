"""Run the ErrorFlow server with ``python -m errorflow``.

Equivalent to ``errorflow serve``; settings come from ERRORFLOW_* variables.
"""

from __future__ import annotations

import asyncio

from errorflow.app import main

asyncio.run(main())
