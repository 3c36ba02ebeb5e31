"""
Path-mapping configuration (`baseUrl` + `paths`) as found in tsconfig.json.

Used to resolve imports of locally built packages that do not live under the
base `node_modules` directory.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class PathMappings:
    """
    Example:
        PathMappings(base_url='/project', paths={'*': ['dist/*']})
    """
    base_url: str
    paths: Dict[str, List[str]] = field(default_factory=dict, hash=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PathMappings':
        base_url = data.get('baseUrl', data.get('base_url'))
        if base_url is None:
            raise ValueError("Path mappings require a 'baseUrl'")
        return cls(base_url=str(base_url), paths={k: list(v) for k, v in data.get('paths', {}).items()})

    @classmethod
    def from_tsconfig(cls, tsconfig_path: Path) -> Optional['PathMappings']:
        """
        Read `compilerOptions.baseUrl`/`paths` from a tsconfig file.

        A relative baseUrl is resolved against the tsconfig's directory.
        Returns None when the tsconfig declares no baseUrl.
        """
        data = json.loads(Path(tsconfig_path).read_text(encoding='utf-8'))
        options = data.get('compilerOptions', {})
        if 'baseUrl' not in options:
            return None
        base_url = (Path(tsconfig_path).parent / options['baseUrl']).resolve()
        return cls(base_url=str(base_url), paths={k: list(v) for k, v in options.get('paths', {}).items()})

    def to_dict(self) -> Dict[str, Any]:
        return {'baseUrl': self.base_url, 'paths': self.paths}
