"""
DRS Hub configuration.

Read once from the environment at startup and frozen into a
``DrsHubConfig`` that is handed to the resolver; nothing here is mutated
while requests are being served.

Environment:
    DRSHUB_ENV               dev (default), staging, prod, ...
    BOND_URL                 Bond base URL
    EXTERNALCREDS_URL        ExternalCreds (ECM) base URL
    SAM_URL                  Sam base URL
    DRSHUB_REQUEST_TIMEOUT   per downstream call timeout, seconds
    DRSHUB_COMPACT_ID_HOSTS  JSON object, compact-id namespace -> host overrides
    DRSHUB_PROVIDERS_FILE    JSON provider registry replacing the defaults
"""

from __future__ import annotations

import json
import logging
import os
from typing import Optional

from pydantic import BaseModel, ConfigDict

from providers import DEFAULT_PROVIDERS, ProviderDefinition, load_registry

logger = logging.getLogger("drs-hub.settings")

ENV_DEV = "dev"
ENV_PROD = "prod"

# Compact identifier namespaces, see
# https://ga4gh.github.io/data-repository-service-schemas/preview/release/drs-1.1.0/docs/#_compact_identifier_based_drs_uris
DG_COMPACT_BDC_PROD = "dg.4503"
DG_COMPACT_BDC_STAGING = "dg.712c"
DG_COMPACT_THE_ANVIL = "dg.anv0"
DRS_COMPACT_THE_ANVIL = "drs.anv0"
DG_COMPACT_CRDC = "dg.4dfc"
DG_COMPACT_KIDS_FIRST = "dg.f82a1a"
DG_COMPACT_PASSPORT_TEST = "dg.test0"

_PROD_COMPACT_ID_HOSTS = {
    DG_COMPACT_BDC_PROD: "gen3.biodatacatalyst.nhlbi.nih.gov",
    DG_COMPACT_BDC_STAGING: "staging.gen3.biodatacatalyst.nhlbi.nih.gov",
    DG_COMPACT_THE_ANVIL: "gen3.theanvil.io",
    DRS_COMPACT_THE_ANVIL: "data.terra.bio",
    DG_COMPACT_CRDC: "nci-crdc.datacommons.io",
    DG_COMPACT_KIDS_FIRST: "data.kidsfirstdrc.org",
    DG_COMPACT_PASSPORT_TEST: "ctds-test-env.planx-pla.net",
}

_NONPROD_COMPACT_ID_HOSTS = {
    DG_COMPACT_BDC_PROD: "staging.gen3.biodatacatalyst.nhlbi.nih.gov",
    DG_COMPACT_BDC_STAGING: "staging.gen3.biodatacatalyst.nhlbi.nih.gov",
    DG_COMPACT_THE_ANVIL: "staging.theanvil.io",
    DRS_COMPACT_THE_ANVIL: "jade.datarepo-dev.broadinstitute.org",
    DG_COMPACT_CRDC: "nci-crdc-staging.datacommons.io",
    DG_COMPACT_KIDS_FIRST: "gen3staging.kidsfirstdrc.org",
    DG_COMPACT_PASSPORT_TEST: "ctds-test-env.planx-pla.net",
}


class DrsHubConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    env: str = ENV_DEV
    bond_url: str
    externalcreds_url: str
    sam_url: str
    request_timeout_seconds: float = 30.0
    compact_id_hosts: dict[str, str]
    providers: tuple[ProviderDefinition, ...]
    passport_issuer: str = "ras"


def _terra_env(env: str) -> str:
    # mock and cromwell-dev deployments talk to the dev Terra services
    return ENV_DEV if env in ("mock", "cromwell-dev") else env


def compact_id_hosts_for(env: str, overrides: Optional[dict[str, str]] = None) -> dict[str, str]:
    hosts = dict(_PROD_COMPACT_ID_HOSTS if env == ENV_PROD else _NONPROD_COMPACT_ID_HOSTS)
    for namespace, host in (overrides or {}).items():
        hosts[namespace.lower()] = host
    return hosts


def load_config(environ: Optional[dict[str, str]] = None) -> DrsHubConfig:
    """Build the frozen service configuration from environment variables."""
    environ = os.environ if environ is None else environ
    env = environ.get("DRSHUB_ENV", ENV_DEV).lower()
    terra_env = _terra_env(env)

    overrides = None
    raw_hosts = environ.get("DRSHUB_COMPACT_ID_HOSTS")
    if raw_hosts:
        overrides = json.loads(raw_hosts)
        if not isinstance(overrides, dict):
            raise ValueError("DRSHUB_COMPACT_ID_HOSTS must be a JSON object of namespace -> host")

    providers_file = environ.get("DRSHUB_PROVIDERS_FILE")
    providers = load_registry(providers_file) if providers_file else tuple(DEFAULT_PROVIDERS.values())

    config = DrsHubConfig(
        env=env,
        bond_url=environ.get("BOND_URL", f"https://broad-bond-{terra_env}.appspot.com"),
        externalcreds_url=environ.get(
            "EXTERNALCREDS_URL", f"https://externalcreds.dsde-{terra_env}.broadinstitute.org"
        ),
        sam_url=environ.get("SAM_URL", f"https://sam.dsde-{terra_env}.broadinstitute.org"),
        request_timeout_seconds=float(environ.get("DRSHUB_REQUEST_TIMEOUT", "30")),
        compact_id_hosts=compact_id_hosts_for(env, overrides),
        providers=providers,
    )
    logger.info(
        "DRS Hub config: env=%s bond=%s externalcreds=%s sam=%s providers=%d",
        config.env, config.bond_url, config.externalcreds_url, config.sam_url, len(config.providers),
    )
    return config
