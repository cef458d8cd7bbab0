# Copyright 2025-2026 Gregorio Elias Roecker Momm and nxCypher contributors
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Connection settings."""

from dataclasses import dataclass
from typing import Optional, Tuple


DEFAULT_USER_AGENT = "boltwire/1.0.0"

# Highest first; each proposal also covers the lower minors of its major
DEFAULT_VERSIONS: Tuple[Tuple[int, int], ...] = ((6, 0), (5, 8), (4, 4), (3, 0))


@dataclass(frozen=True)
class ConnectionConfig:
    """
    Settings for opening a Bolt connection.

    Attributes:
        host: Server address
        port: Server port (default: 7687, standard Bolt port)
        timeout: Seconds allowed per connect/read/write call; None waits forever
        blocking: Use blocking sockets, or non-blocking sockets with select()
        versions: Up to four protocol versions to propose, highest first
        user_agent: Client identification string sent in INIT/HELLO
    """
    host: str = "127.0.0.1"
    port: int = 7687
    timeout: Optional[float] = 15.0
    blocking: bool = True
    versions: Tuple[Tuple[int, int], ...] = DEFAULT_VERSIONS
    user_agent: str = DEFAULT_USER_AGENT

    def __post_init__(self):
        if not 1 <= len(self.versions) <= 4:
            raise ValueError("Between one and four protocol versions must be proposed")
        if self.timeout is not None and self.timeout < 0:
            raise ValueError("Timeout cannot be negative")
