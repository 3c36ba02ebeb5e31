"""
The transformer seam.

pkgrecompile schedules and persists work; turning a bundle into its
recompiled form is delegated to a Transformer. Transformers are referenced
by a `module:attribute` string so that worker processes can rebuild them.
"""

import importlib
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from ..exit_codes import ConfigError
from ..infra.file_system import FileSystem
from .bundle import EntryPointBundle

logger = logging.getLogger(__name__)

DEFAULT_TRANSFORMER = 'pkgrecompile.services.transformer:PassthroughTransformer'


@dataclass(frozen=True)
class Diagnostic:
    message: str
    category: str = 'error'
    file: Optional[Path] = None

    def __str__(self) -> str:
        location = f"{self.file}: " if self.file is not None else ''
        return f"{location}{self.category}: {self.message}"


@dataclass(frozen=True)
class FileToWrite:
    path: Path
    contents: str


@dataclass
class TransformResult:
    """Outcome of transforming one bundle; `success=False` is fatal."""
    success: bool
    diagnostics: List[Diagnostic] = field(default_factory=list)
    transformed_files: List[FileToWrite] = field(default_factory=list)


class Transformer(ABC):
    """
    Turns an EntryPointBundle into the files to write.

    Implementations are constructed with the run's FileSystem.
    """

    def __init__(self, fs: FileSystem):
        self.fs = fs

    @abstractmethod
    def transform(self, bundle: EntryPointBundle) -> TransformResult:
        """Transform `bundle`; must not write to disk itself."""


class PassthroughTransformer(Transformer):
    """Re-emits every bundle and typings file unchanged."""

    def transform(self, bundle: EntryPointBundle) -> TransformResult:
        files = [
            FileToWrite(path, self.fs.read_text(path))
            for path in list(bundle.src_files) + list(bundle.dts_files)
        ]
        return TransformResult(success=True, transformed_files=files)


def format_diagnostics(diagnostics: List[Diagnostic]) -> str:
    return '\n'.join(str(d) for d in diagnostics)


def load_transformer(reference: str, fs: FileSystem) -> Transformer:
    """
    Instantiate the transformer named by `reference` ("package.module:Name").

    Raises:
        ConfigError: if the reference is malformed or cannot be imported
    """
    module_name, sep, attribute = reference.partition(':')
    if not sep or not module_name or not attribute:
        raise ConfigError(f"Invalid transformer reference '{reference}'; expected 'module:attribute'")

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigError(f"Cannot import transformer module '{module_name}': {e}")

    factory = getattr(module, attribute, None)
    if factory is None:
        raise ConfigError(f"Module '{module_name}' has no attribute '{attribute}'")

    transformer = factory(fs)
    if not hasattr(transformer, 'transform'):
        raise ConfigError(f"'{reference}' did not produce a transformer")
    logger.debug(f"Loaded transformer {reference}")
    return transformer
