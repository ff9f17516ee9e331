"""
Modulo `policy_config` — caricamento della configurazione delle policy di licenza.

Questo modulo legge il file JSON delle policy (indicato dal chiamante oppure il
`license_policy.json` incluso nel package) e costruisce il `PolicyIndex` una
sola volta per istanza di configurazione.

La classe principale è `LicensePolicyConfig`:
- load(): legge e decodifica la lista di policy (una sola volta)
- get_index(): costruisce l'indice al primo accesso; chiamanti concorrenti
  attendono la fine della costruzione e ricevono tutti lo stesso indice
- get_resolver(): restituisce un `PolicyResolver` sull'indice
- reset() / reload(): svuotano lo stato e lo ricostruiscono da capo
"""

import json
import logging
import os
import threading
from importlib import resources
from typing import Any, Dict, List, Optional, Union
from pydantic import ValidationError

from sbom_policy.models.schemas import LicensePolicy, PolicyDocument
from .errors import ConfigError
from .evaluator import CombinationMode
from .index import PolicyIndex, build_policy_index
from .parser_spdx import DEFAULT_MAX_DEPTH
from .resolver import PolicyResolver

DEFAULT_POLICY_FILE = "license_policy.json"
EMBEDDED_SOURCE = f"<embedded:{DEFAULT_POLICY_FILE}>"

logger = logging.getLogger(__name__)


def parse_policy_document(data: Union[bytes, str, Dict[str, Any]], source: str = "<memory>") -> PolicyDocument:
    """
    Decodifica il contenuto di un file di policy già letto.

    Solleva ConfigError se il contenuto non è JSON valido o non rispetta la
    struttura {"policies": [...], "annotations": {...}}.
    """
    if isinstance(data, (bytes, str)):
        try:
            data = json.loads(data)
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise ConfigError(f"Cannot decode license policy JSON ({e})", source) from e
    if not isinstance(data, dict):
        raise ConfigError("License policy document must be a JSON object", source)
    try:
        return PolicyDocument.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Malformed license policy document ({e.error_count()} errors)", source) from e


def read_policy_file(path: str) -> PolicyDocument:
    """Legge e decodifica un file di policy dal filesystem."""
    abs_path = os.path.abspath(path)
    if not os.path.isfile(abs_path):
        raise ConfigError("Unable to find license policy file", path)
    logger.info("Loading license policy file: `%s`...", abs_path)
    try:
        with open(abs_path, "rb") as f:
            buffer = f.read()
    except OSError as e:
        logger.exception("Errore leggendo %s dal filesystem", abs_path)
        raise ConfigError("Unable to read license policy file", abs_path) from e
    return parse_policy_document(buffer, abs_path)


def read_embedded_policy_document() -> PolicyDocument:
    """Legge il file di policy di default incluso come risorsa del package."""
    logger.info("Loading (embedded) default license policy file: `%s`...", DEFAULT_POLICY_FILE)
    try:
        buffer = resources.files(__package__).joinpath(DEFAULT_POLICY_FILE).read_bytes()
    except (FileNotFoundError, OSError) as e:
        logger.exception("Errore leggendo %s come risorsa di package %s", DEFAULT_POLICY_FILE, __package__)
        raise ConfigError("Unable to read embedded license policy file", EMBEDDED_SOURCE) from e
    return parse_policy_document(buffer, EMBEDDED_SOURCE)


class LicensePolicyConfig:
    """
    Una configurazione di policy: sorgente, policy lette e indice derivato.

    Nessuno stato globale: ogni istanza è indipendente e viene passata
    esplicitamente a chi deve risolvere le licenze.
    """

    def __init__(
        self,
        policy_file: Optional[str] = None,
        strict_families: bool = False,
        combination_mode: Union[CombinationMode, str] = CombinationMode.RESTRICTIVE,
        max_depth: int = DEFAULT_MAX_DEPTH,
        document: Optional[PolicyDocument] = None,
    ):
        self.default_policy_file = policy_file or None
        self.policy_file = self.default_policy_file
        self.strict_families = strict_families
        try:
            self.combination_mode = CombinationMode(combination_mode)
        except ValueError as e:
            raise ConfigError(f"Unknown policy combination mode `{combination_mode}`") from e
        self.max_depth = max_depth
        self._initial_document = document
        self._document: Optional[PolicyDocument] = document
        self._index: Optional[PolicyIndex] = None
        self._lock = threading.Lock()

    @classmethod
    def from_policies(cls, policies: List[LicensePolicy], **kwargs) -> "LicensePolicyConfig":
        """Configurazione costruita da una lista di policy già in memoria."""
        return cls(document=PolicyDocument(policies=list(policies)), **kwargs)

    @property
    def source(self) -> str:
        return self.policy_file or EMBEDDED_SOURCE

    def load(self) -> PolicyDocument:
        """Legge la lista di policy una sola volta; le chiamate successive riusano il risultato."""
        with self._lock:
            return self._load_locked()

    def _load_locked(self) -> PolicyDocument:
        if self._document is None:
            if self.policy_file:
                self._document = read_policy_file(self.policy_file)
            else:
                self._document = read_embedded_policy_document()
            logger.info("Loaded %d license policies from %s", len(self._document.policies), self.source)
        return self._document

    @property
    def policies(self) -> List[LicensePolicy]:
        return list(self.load().policies)

    @property
    def annotations(self) -> Dict[str, str]:
        return dict(self.load().annotations)

    def get_index(self) -> PolicyIndex:
        """
        Restituisce l'indice, costruendolo al primo accesso.

        Solleva ConfigError / IndexBuildError se la configurazione non è utilizzabile;
        in quel caso l'indice non viene memorizzato.
        """
        index = self._index
        if index is not None:
            return index
        with self._lock:
            if self._index is None:
                document = self._load_locked()
                self._index = build_policy_index(document.policies, self.strict_families)
            return self._index

    def get_resolver(self) -> PolicyResolver:
        return PolicyResolver(self.get_index(), self.combination_mode, self.max_depth)

    def reset(self) -> None:
        """Svuota policy e indice e ripristina il file di policy iniziale."""
        with self._lock:
            self.policy_file = self.default_policy_file
            self._document = self._initial_document
            self._index = None

    def reload(self, policy_file: Optional[str] = None) -> PolicyIndex:
        """Ricarica la configurazione (opzionalmente da un altro file) e ricostruisce l'indice."""
        with self._lock:
            self.policy_file = policy_file or self.default_policy_file
            self._document = None if policy_file else self._initial_document
            self._index = None
        return self.get_index()
