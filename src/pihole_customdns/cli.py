#!/usr/bin/env python3
"""docker-pihole-customdns - Container DNS records for Pi-hole

Keeps Pi-hole custom DNS records in step with the containers running on a
Docker host. A container asks for a record by carrying the label

    docker-pihole-customdns.domain: app.home.lan

and gets either an A record (custom DNS) pointing at the default target IP or a
CNAME record (custom CNAME) pointing at the default target domain for as long
as the container exists. The record is removed when the container is removed.

On startup every existing container (running or stopped) is compared against
the records already held by each Pi-hole and missing records are created. The
daemon then follows the Docker event stream and applies create/delete requests
as containers come and go.

Options (flag > environment variable > YAML config file):

    Default target (exactly one is required):
        -targetip          DPC_DEFAULT_TARGET_IP       A record answer for every container
        -targetdomain      DPC_DEFAULT_TARGET_DOMAIN   CNAME target for every container

    Pi-hole endpoints:
        -piholeurl         DPC_PIHOLE_URL              Pi-hole URL (e.g. http://pi.hole)
        -apitoken          DPC_PIHOLE_API_TOKEN        Pi-hole API token
        -piholeurl2        DPC_PIHOLE_URL_2            Second Pi-hole URL (optional)
        -apitoken2         DPC_PIHOLE_API_TOKEN_2      Second Pi-hole API token

    Runtime:
        --config           DPC_CONFIG_PATH             YAML file holding any of the settings above
        --log-level        LOG_LEVEL                   DEBUG, INFO, WARNING, ERROR (default: INFO)
        --request-timeout  DPC_REQUEST_TIMEOUT         Pi-hole HTTP timeout in seconds (default: 10)
        --sync-mode        DPC_SYNC_MODE               "watch" or "once" (default: watch)

    Example config file:
        target_ip: 192.168.1.10
        pihole_url: http://pi.hole
        api_token: "0123456789abcdef"
        pihole_url_2: http://pi2.hole
        api_token_2: "fedcba9876543210"
        request_timeout: 5
"""

from __future__ import annotations

import argparse
import http.client
import logging
import os
import sys
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple
from urllib.parse import urlencode

import docker
import requests
import urllib3
import yaml
from docker.errors import DockerException

# =============================================================================
# Constants
# =============================================================================

TARGET_KEY = "docker-pihole-customdns.domain"
API_PATH = "/admin/api.php"
DEFAULT_REQUEST_TIMEOUT = 10.0
SYNC_MODES = ("watch", "once")

# Narrowed on the Docker side by category only; labels are checked locally.
EVENT_FILTERS = {"type": "container", "event": ["create", "destroy", "remove"]}

# Option name -> environment variable. The option name is also the YAML key.
ENV_VARS = {
    "target_ip": "DPC_DEFAULT_TARGET_IP",
    "target_domain": "DPC_DEFAULT_TARGET_DOMAIN",
    "pihole_url": "DPC_PIHOLE_URL",
    "api_token": "DPC_PIHOLE_API_TOKEN",
    "pihole_url_2": "DPC_PIHOLE_URL_2",
    "api_token_2": "DPC_PIHOLE_API_TOKEN_2",
    "log_level": "LOG_LEVEL",
    "request_timeout": "DPC_REQUEST_TIMEOUT",
    "sync_mode": "DPC_SYNC_MODE",
}
CONFIG_PATH_ENV = "DPC_CONFIG_PATH"
NUMERIC_OPTIONS = ("request_timeout",)

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    """Configure root logging once and apply ``level``."""
    resolved = getattr(logging, str(level).upper(), logging.INFO)
    logging.basicConfig(
        level=resolved,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logging.getLogger().setLevel(resolved)


# =============================================================================
# Errors
# =============================================================================


class ConfigError(Exception):
    """Missing or conflicting startup settings."""


class ProviderFetchError(Exception):
    """Existing records could not be read from a DNS provider."""


class ProviderUnreachable(ProviderFetchError):
    pass


class ProviderError(ProviderFetchError):
    pass


class ProviderMalformedResponse(ProviderFetchError):
    pass


class ContainerHostError(Exception):
    """The container host could not list its containers."""


class EventStreamError(Exception):
    """The container event subscription failed or ended. Always terminal."""


# =============================================================================
# Enums
# =============================================================================


class RecordMode(Enum):
    """Record type written for every container.

    ADDRESS: Pi-hole custom DNS (A record) answering with the default target IP.
    ALIAS:   Pi-hole custom CNAME pointing at the default target domain.
    """

    ADDRESS = "A"
    ALIAS = "CNAME"

    @property
    def list_name(self) -> str:
        """Pi-hole API list the records live in."""
        return "customdns" if self is RecordMode.ADDRESS else "customcname"

    @property
    def value_param(self) -> str:
        """Query parameter carrying the record answer."""
        return "ip" if self is RecordMode.ADDRESS else "target"


class Operation(Enum):
    CREATE = "add"
    DELETE = "delete"


class EventAction(Enum):
    CREATED = "created"
    REMOVED = "removed"


class ReconcilerState(Enum):
    BOOTSTRAPPING = "bootstrapping"
    STEADY = "steady"
    TERMINATED = "terminated"


EVENT_ACTIONS = {
    "create": EventAction.CREATED,
    "destroy": EventAction.REMOVED,
    "remove": EventAction.REMOVED,
}

# =============================================================================
# Data Classes
# =============================================================================

# (name, target) pairs exactly as the provider reports them.
ExistingRecordRelation = List[Tuple[str, str]]


@dataclass(frozen=True)
class DesiredRecord:
    """The record a container asks for. ``name`` is always lower-cased."""

    name: str
    mode: RecordMode


@dataclass(frozen=True)
class ResolvedTarget:
    """Daemon-wide record answer: an IP (A records) or a domain (CNAME records)."""

    mode: RecordMode
    value: str

    @classmethod
    def from_options(cls, target_ip: str, target_domain: str) -> "ResolvedTarget":
        if not target_ip and not target_domain:
            raise ConfigError(
                "Default Docker host target IP or target domain are not provided. "
                "Set either using the -targetip flag (DPC_DEFAULT_TARGET_IP) "
                "or -targetdomain (DPC_DEFAULT_TARGET_DOMAIN)."
            )
        if target_ip and target_domain:
            raise ConfigError(
                "Both default target IP and target domain are set. Only one default can be used."
            )
        if target_ip:
            return cls(mode=RecordMode.ADDRESS, value=target_ip)
        return cls(mode=RecordMode.ALIAS, value=target_domain)


@dataclass(frozen=True)
class ProviderEndpoint:
    """One Pi-hole instance and its API token."""

    url: str
    token: str = field(repr=False)

    @property
    def api_url(self) -> str:
        return self.url.rstrip("/") + API_PATH


@dataclass(frozen=True)
class ContainerSnapshot:
    """A container as listed by the host."""

    name: str
    labels: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class LifecycleEvent:
    """A decoded container event. ``attributes`` carries the container labels."""

    action: str
    container_name: str
    attributes: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class EventDecision:
    """A relevant event: what happened and which domain it concerns."""

    action: EventAction
    domain: str
    container_name: str


@dataclass(frozen=True)
class Outcome:
    success: bool
    message: str = ""


@dataclass(frozen=True)
class Settings:
    """Startup configuration. Built once and passed to everything that needs it."""

    target: ResolvedTarget
    endpoints: Tuple[ProviderEndpoint, ...]
    log_level: str = "INFO"
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    sync_mode: str = "watch"


# =============================================================================
# Container Label Filter
# =============================================================================


def extract_domain(
    labels: Optional[Mapping[str, str]], target_key: str = TARGET_KEY
) -> Optional[str]:
    """Return the lower-cased domain declared under ``target_key``.

    The key is matched case-insensitively. Returns None when the label is
    absent. An empty value is still returned (as an empty string); domain
    syntax is left for the provider to judge.
    """
    if not labels:
        return None
    wanted = target_key.lower()
    for key, value in labels.items():
        if key.lower() == wanted:
            return (value or "").lower()
    return None


def classify_event(
    event: LifecycleEvent, target_key: str = TARGET_KEY
) -> Optional[EventDecision]:
    """Decide whether a lifecycle event needs a DNS change.

    Returns None for actions other than create/destroy and for containers
    without the target label.
    """
    action = EVENT_ACTIONS.get(event.action.lower())
    if action is None:
        return None
    domain = extract_domain(event.attributes, target_key)
    if domain is None:
        return None
    return EventDecision(action=action, domain=domain, container_name=event.container_name)


def is_record_missing(name: str, target: str, existing: ExistingRecordRelation) -> bool:
    """Check whether ``(name, target)`` is absent from ``existing``."""
    for record_name, record_target in existing:
        if record_name == name and record_target == target:
            return False
    return True


# =============================================================================
# DNS Provider Interface and Implementations
# =============================================================================


class DNSProvider(ABC):
    """Abstract base class for DNS providers."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the provider name for logging."""
        pass

    @abstractmethod
    def test_connection(self) -> bool:
        """Check that the provider is reachable and accepts our credentials."""
        pass

    @abstractmethod
    def get_records(self, mode: RecordMode) -> ExistingRecordRelation:
        """Return the provider's current records of the given type.

        Raises a ProviderFetchError subclass when the records cannot be read.
        """
        pass

    @abstractmethod
    def mutate(
        self, operation: Operation, mode: RecordMode, domain: str, target: str
    ) -> Outcome:
        """Create or delete one record. Never raises on API failure."""
        pass

    def add_record(self, mode: RecordMode, domain: str, target: str) -> Outcome:
        return self.mutate(Operation.CREATE, mode, domain, target)

    def delete_record(self, mode: RecordMode, domain: str, target: str) -> Outcome:
        return self.mutate(Operation.DELETE, mode, domain, target)


def build_query(flag: str, params: Sequence[Tuple[str, str]]) -> str:
    """Build a Pi-hole query string.

    The API selects the list by a bare, valueless parameter (``customdns``,
    ``customcname``, ``summaryRaw``). The remaining parameters are URL encoded.
    """
    encoded = urlencode(list(params))
    return f"{flag}&{encoded}" if encoded else flag


class PiholeDNSProvider(DNSProvider):
    """Pi-hole custom DNS / custom CNAME provider (``/admin/api.php``)."""

    def __init__(self, endpoint: ProviderEndpoint, timeout: float = DEFAULT_REQUEST_TIMEOUT):
        self._endpoint = endpoint
        self._api_url = endpoint.api_url
        self._timeout = timeout
        self._session = requests.Session()

    @property
    def name(self) -> str:
        return f"Pi-hole {self._endpoint.url}"

    def _redact(self, error: Any) -> str:
        # requests embeds the full URL, auth token included, in its messages.
        text = str(error)
        if self._endpoint.token:
            text = text.replace(self._endpoint.token, "***")
        return text

    def _get(self, flag: str, params: Sequence[Tuple[str, str]]) -> requests.Response:
        url = f"{self._api_url}?{build_query(flag, params)}"
        return self._session.get(url, timeout=self._timeout)

    def test_connection(self) -> bool:
        try:
            response = self._get("summaryRaw", [("auth", self._endpoint.token)])
        except requests.exceptions.RequestException as e:
            logger.error(f"Error connecting to {self.name}: {self._redact(e)}")
            return False

        # An unauthenticated summary comes back as a 200 with an empty array.
        body = response.text.strip()
        if response.status_code != 200 or not body or body == "[]":
            logger.error(f"Error connecting to {self.name}. Check API token.")
            return False

        logger.info(f"Connected to {self.name} successfully")
        return True

    def get_records(self, mode: RecordMode) -> ExistingRecordRelation:
        params = [("auth", self._endpoint.token), ("action", "get")]
        try:
            response = self._get(mode.list_name, params)
        except requests.exceptions.RequestException as e:
            raise ProviderUnreachable(
                f"Error fetching existing DNS entries from {self.name}: {self._redact(e)}"
            ) from e

        if response.status_code != 200:
            raise ProviderError(
                f"Failed to fetch existing DNS entries from {self.name}. "
                f"Status code: {response.status_code}"
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise ProviderMalformedResponse(
                f"Undecodable DNS entries response from {self.name}: {e}"
            ) from e

        data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(data, list):
            raise ProviderMalformedResponse(
                f"DNS entries response from {self.name} has no 'data' list"
            )

        records: ExistingRecordRelation = []
        for entry in data:
            if (
                isinstance(entry, (list, tuple))
                and len(entry) == 2
                and all(isinstance(v, str) for v in entry)
            ):
                records.append((entry[0], entry[1]))
            else:
                logger.warning(f"Skipping malformed record from {self.name}: {entry}")
        logger.debug(f"{self.name}: {len(records)} existing {mode.value} record(s)")
        return records

    def mutate(
        self, operation: Operation, mode: RecordMode, domain: str, target: str
    ) -> Outcome:
        params = [
            ("auth", self._endpoint.token),
            ("action", operation.value),
            (mode.value_param, target),
            ("domain", domain),
        ]
        try:
            response = self._get(mode.list_name, params)
        except requests.exceptions.RequestException as e:
            return Outcome(success=False, message=f"Error making API request: {self._redact(e)}")

        if response.status_code != 200:
            return Outcome(success=False, message=f"HTTP status {response.status_code}")

        try:
            payload = response.json()
        except ValueError as e:
            return Outcome(success=False, message=f"Error decoding JSON response: {e}")

        if not isinstance(payload, dict):
            return Outcome(success=False, message=f"Unexpected response: {payload!r}")
        return Outcome(
            success=bool(payload.get("success")),
            message=str(payload.get("message") or ""),
        )


# =============================================================================
# Container Host Interface and Implementations
# =============================================================================


def decode_event(raw: Any) -> Optional[LifecycleEvent]:
    """Turn a raw Docker event message into a LifecycleEvent.

    Returns None for messages that are not container events.
    """
    if not isinstance(raw, Mapping):
        return None
    if raw.get("Type", "container") != "container":
        return None
    action = raw.get("Action") or raw.get("status")
    if not action:
        return None
    actor = raw.get("Actor") or {}
    attributes = actor.get("Attributes") or {}
    return LifecycleEvent(
        action=str(action),
        container_name=str(attributes.get("name", "")),
        attributes={str(k): str(v) for k, v in attributes.items()},
    )


class EventStream:
    """Typed view over the container host's event feed.

    ``next_event`` blocks until the next container event arrives. Any failure
    of the underlying feed, including the host closing it, is raised as
    EventStreamError and ends the subscription.
    """

    def __init__(self, raw_events: Iterable[Any]):
        self._raw = iter(raw_events)
        self._closed = False

    def next_event(self) -> LifecycleEvent:
        if self._closed:
            raise EventStreamError("Event stream already terminated")
        while True:
            try:
                raw = next(self._raw)
            except StopIteration:
                self._closed = True
                raise EventStreamError("Event stream closed by the container host") from None
            except (
                DockerException,
                requests.exceptions.RequestException,
                urllib3.exceptions.ProtocolError,
                http.client.HTTPException,
                OSError,
            ) as e:
                self._closed = True
                raise EventStreamError(f"Error watching events: {e}") from e

            event = decode_event(raw)
            if event is None:
                logger.debug(f"Ignoring non-container event: {raw}")
                continue
            return event


class ContainerHost(ABC):
    """Abstract base class for container hosts."""

    @abstractmethod
    def list_containers(self) -> List[ContainerSnapshot]:
        """List all containers, stopped ones included."""
        pass

    @abstractmethod
    def events(self) -> EventStream:
        """Subscribe to container create/destroy events."""
        pass


class DockerContainerHost(ContainerHost):
    """Docker Engine via the Docker SDK (``DOCKER_HOST`` and friends honoured)."""

    def __init__(self, client: Optional[docker.DockerClient] = None):
        self._client = client if client is not None else docker.from_env()

    def list_containers(self) -> List[ContainerSnapshot]:
        try:
            containers = self._client.containers.list(all=True, ignore_removed=True)
        except (DockerException, requests.exceptions.RequestException) as e:
            raise ContainerHostError(f"Error fetching existing containers: {e}") from e
        return [ContainerSnapshot(name=c.name, labels=dict(c.labels or {})) for c in containers]

    def events(self) -> EventStream:
        try:
            raw_events = self._client.events(decode=True, filters=EVENT_FILTERS)
        except (DockerException, requests.exceptions.RequestException) as e:
            raise EventStreamError(f"Error subscribing to container events: {e}") from e
        return EventStream(raw_events)


# =============================================================================
# Core Reconciler
# =============================================================================


class ContainerDNSReconciler:
    """Keeps every configured DNS provider in step with labelled containers.

    Providers are handled one after another in configured order, and a failed
    mutation on one never stops the attempt on the next.
    """

    def __init__(
        self,
        *,
        providers: Sequence[DNSProvider],
        container_host: ContainerHost,
        target: ResolvedTarget,
        target_key: str = TARGET_KEY,
    ):
        self.providers = list(providers)
        self.container_host = container_host
        self.target = target
        self.target_key = target_key
        self.state = ReconcilerState.BOOTSTRAPPING

    def desired_record(self, labels: Mapping[str, str]) -> Optional[DesiredRecord]:
        domain = extract_domain(labels, self.target_key)
        if domain is None:
            return None
        return DesiredRecord(name=domain, mode=self.target.mode)

    def _apply(
        self,
        provider: DNSProvider,
        operation: Operation,
        record: DesiredRecord,
        container_name: str,
    ) -> Outcome:
        if operation is Operation.CREATE:
            outcome = provider.add_record(record.mode, record.name, self.target.value)
        else:
            outcome = provider.delete_record(record.mode, record.name, self.target.value)
        if outcome.success:
            logger.info(
                f"{provider.name}: {operation.value} {record.mode.value} request successful "
                f"for container {container_name} - {record.name}"
            )
        else:
            logger.warning(
                f"{provider.name}: {operation.value} {record.mode.value} request failed "
                f"for container {container_name} - {record.name}: {outcome.message}"
            )
        return outcome

    def _bootstrap_provider(self, provider: DNSProvider) -> None:
        existing = provider.get_records(self.target.mode)
        containers = self.container_host.list_containers()

        created = 0
        present = 0
        for container in containers:
            record = self.desired_record(container.labels)
            if record is None:
                continue
            if not is_record_missing(record.name, self.target.value, existing):
                present += 1
                logger.debug(f"{provider.name}: {record.name} already present")
                continue
            self._apply(provider, Operation.CREATE, record, container.name)
            created += 1

        logger.info(
            f"{provider.name}: {len(existing)} existing record(s), "
            f"{present} already in place, {created} create request(s) sent"
        )

    def bootstrap(self) -> None:
        """Create every missing record for the containers that exist right now.

        Records whose container disappeared while the daemon was down are left
        alone. Fetch and listing failures propagate.
        """
        self.state = ReconcilerState.BOOTSTRAPPING
        for provider in self.providers:
            self._bootstrap_provider(provider)

    def handle_event(self, event: LifecycleEvent) -> Optional[EventDecision]:
        decision = classify_event(event, self.target_key)
        if decision is None:
            logger.debug(f"Ignoring {event.action} event for container {event.container_name}")
            return None

        operation = (
            Operation.CREATE if decision.action is EventAction.CREATED else Operation.DELETE
        )
        record = DesiredRecord(name=decision.domain, mode=self.target.mode)
        for provider in self.providers:
            self._apply(provider, operation, record, decision.container_name)
        return decision

    def watch(self, stream: EventStream) -> None:
        """Apply events until the stream fails. Only returns by raising."""
        self.state = ReconcilerState.STEADY
        logger.info("Watching container events")
        try:
            while True:
                self.handle_event(stream.next_event())
        except EventStreamError:
            self.state = ReconcilerState.TERMINATED
            raise

    def run(self) -> None:
        # Subscribe first so events raised during bootstrap are not lost.
        stream = self.container_host.events()
        self.bootstrap()
        self.watch(stream)


# =============================================================================
# Configuration
# =============================================================================


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="docker-pihole-customdns",
        description="Sync Pi-hole custom DNS records with labelled Docker containers.",
    )
    parser.add_argument(
        "-targetip", "--targetip", dest="target_ip",
        help="Default target IP address for the Docker host",
    )
    parser.add_argument(
        "-targetdomain", "--targetdomain", dest="target_domain",
        help="Default target domain address for the Docker host",
    )
    parser.add_argument("-apitoken", "--apitoken", dest="api_token", help="Pi-hole API token")
    parser.add_argument(
        "-piholeurl", "--piholeurl", dest="pihole_url", help="Pi-hole URL (e.g. http://pi.hole)"
    )
    parser.add_argument(
        "-apitoken2", "--apitoken2", dest="api_token_2",
        help="Second Pi-hole API token (Optional)",
    )
    parser.add_argument(
        "-piholeurl2", "--piholeurl2", dest="pihole_url_2",
        help="Second Pi-hole URL (Optional e.g. http://pi.hole)",
    )
    parser.add_argument("--config", dest="config_path", help="YAML settings file")
    parser.add_argument("--log-level", dest="log_level", help="DEBUG, INFO, WARNING, ERROR")
    parser.add_argument(
        "--request-timeout", dest="request_timeout", help="Pi-hole HTTP timeout in seconds"
    )
    parser.add_argument("--sync-mode", dest="sync_mode", help='"watch" or "once"')
    return parser


def load_config_file(config_path: str) -> Dict[str, Any]:
    """Read settings from a YAML mapping keyed by option name."""
    try:
        with open(config_path, "r") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to load config file {config_path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {config_path} must contain a mapping")

    for key in sorted(set(data) - set(ENV_VARS)):
        logger.warning(f"Ignoring unknown key '{key}' in {config_path}")
    return data


def _resolve_option(
    name: str, args: argparse.Namespace, environ: Mapping[str, str], file_values: Mapping[str, Any]
) -> str:
    value = getattr(args, name, None)
    if not value:
        value = environ.get(ENV_VARS[name], "")
    if not value:
        value = file_values.get(name)
        if value is None:
            return ""
        # YAML turns unquoted 0123 or 0x1f into numbers; tokens must stay verbatim.
        if name in NUMERIC_OPTIONS:
            if isinstance(value, bool) or not isinstance(value, (str, int, float)):
                raise ConfigError(f"Config key '{name}' must be a number")
        elif not isinstance(value, str):
            raise ConfigError(
                f"Config key '{name}' must be a string; quote the value in the YAML file"
            )
    return str(value).strip()


def load_settings(
    argv: Optional[Sequence[str]] = None, environ: Optional[Mapping[str, str]] = None
) -> Settings:
    """Build Settings from flags, environment and the optional YAML file.

    Raises ConfigError on missing or conflicting settings.
    """
    args = build_arg_parser().parse_args(argv)
    environ = os.environ if environ is None else environ

    config_path = args.config_path or environ.get(CONFIG_PATH_ENV, "")
    file_values = load_config_file(config_path) if config_path else {}
    values = {name: _resolve_option(name, args, environ, file_values) for name in ENV_VARS}

    target = ResolvedTarget.from_options(values["target_ip"], values["target_domain"])

    if not values["api_token"]:
        raise ConfigError(
            "Pi-hole API token is not provided. "
            "Set it using the -apitoken flag or DPC_PIHOLE_API_TOKEN environment variable."
        )
    if not values["pihole_url"]:
        raise ConfigError(
            "Pi-hole URL is not provided. "
            "Set it using the -piholeurl flag or DPC_PIHOLE_URL environment variable."
        )
    endpoints = [ProviderEndpoint(url=values["pihole_url"], token=values["api_token"])]

    if values["pihole_url_2"]:
        if not values["api_token_2"]:
            raise ConfigError(
                "Second Pi-hole API token is not provided. "
                "Set it using the -apitoken2 flag or DPC_PIHOLE_API_TOKEN_2 environment variable."
            )
        endpoints.append(ProviderEndpoint(url=values["pihole_url_2"], token=values["api_token_2"]))

    request_timeout = DEFAULT_REQUEST_TIMEOUT
    if values["request_timeout"]:
        try:
            request_timeout = float(values["request_timeout"])
        except ValueError:
            request_timeout = 0.0
        if request_timeout <= 0:
            raise ConfigError(
                f"Invalid request timeout: {values['request_timeout']}. Use a positive number of seconds"
            )

    sync_mode = (values["sync_mode"] or "watch").lower()
    if sync_mode not in SYNC_MODES:
        raise ConfigError(f"Invalid sync mode: {values['sync_mode']}. Use 'once' or 'watch'")

    return Settings(
        target=target,
        endpoints=tuple(endpoints),
        log_level=(values["log_level"] or "INFO").upper(),
        request_timeout=request_timeout,
        sync_mode=sync_mode,
    )


# =============================================================================
# Main
# =============================================================================


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Main entry point."""
    configure_logging(os.getenv("LOG_LEVEL", "INFO"))

    try:
        settings = load_settings(argv)
    except ConfigError as e:
        logger.error(str(e))
        sys.exit(1)
    configure_logging(settings.log_level)

    logger.info(
        f"docker-pihole-customdns: {settings.target.mode.value} records -> {settings.target.value}"
    )
    logger.info(f"Pi-hole endpoints: {', '.join(e.url for e in settings.endpoints)}")
    logger.info(f"Sync mode: {settings.sync_mode}")

    providers = [
        PiholeDNSProvider(endpoint, timeout=settings.request_timeout)
        for endpoint in settings.endpoints
    ]
    for provider in providers:
        if not provider.test_connection():
            logger.error(f"Cannot connect to {provider.name}. Exiting.")
            sys.exit(1)

    try:
        container_host = DockerContainerHost()
    except DockerException as e:
        logger.error(f"Cannot connect to the Docker host: {e}")
        sys.exit(1)

    reconciler = ContainerDNSReconciler(
        providers=providers,
        container_host=container_host,
        target=settings.target,
    )

    try:
        if settings.sync_mode == "once":
            reconciler.bootstrap()
            return
        reconciler.run()
    except KeyboardInterrupt:
        logger.info("Shutting down gracefully...")
    except (ProviderFetchError, ContainerHostError, EventStreamError) as e:
        logger.error(str(e))
        sys.exit(1)
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
