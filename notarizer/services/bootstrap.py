from __future__ import annotations

from dataclasses import dataclass, field

from notarizer.clients.notarytool import NotarytoolService, XcrunStapler
from notarizer.clients.stub import StubNotaryService, StubStapler
from notarizer.domain.auth import Credentials, select_auth
from notarizer.domain.contracts import NotaryService, Stapler, StatusReporter
from notarizer.workers.coordinator import NotarizationCoordinator
from notarizer.workers.reporter import NullReporter
from notarizer.workers.settings import PollerSettings

SUPPORTED_BACKENDS = ("notarytool", "stub")


@dataclass(frozen=True)
class RuntimeOptions:
    backend: str = "notarytool"
    credentials: Credentials = field(default_factory=Credentials)
    settings: PollerSettings = field(default_factory=PollerSettings)
    notarytool_cmd: tuple[str, ...] | None = None


@dataclass
class RuntimeContainer:
    service: NotaryService
    stapler: Stapler
    coordinator: NotarizationCoordinator


def build_runtime_container(
    options: RuntimeOptions,
    *,
    run_id: str,
    reporter: StatusReporter | None = None,
) -> RuntimeContainer:
    """Wire collaborators for one run.

    Credentials are validated here, before any network call is made.
    """
    service: NotaryService
    stapler: Stapler
    if options.backend == "notarytool":
        auth = select_auth(options.credentials)
        auth_args = tuple(auth.command_args())
        if options.notarytool_cmd:
            service = NotarytoolService(auth_args=auth_args, base_cmd=options.notarytool_cmd)
        else:
            service = NotarytoolService(auth_args=auth_args)
        stapler = XcrunStapler()
    elif options.backend == "stub":
        service = StubNotaryService()
        stapler = StubStapler()
    else:
        supported = ", ".join(SUPPORTED_BACKENDS)
        raise ValueError(f"Unsupported backend '{options.backend}'. Supported backends: {supported}")

    coordinator = NotarizationCoordinator(
        service=service,
        settings=options.settings,
        reporter=reporter if reporter is not None else NullReporter(),
        stapler=stapler,
        run_id=run_id,
    )
    return RuntimeContainer(service=service, stapler=stapler, coordinator=coordinator)
