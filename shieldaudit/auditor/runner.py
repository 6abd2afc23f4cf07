"""Audit pipeline runner - orchestrates one run end to end.

Phases:
1. Resolve shield maps (user-supplied or discovered)
2. Classify protected properties per map
3. Classify unprotected properties (full audits only)
4. Resolve hostnames, one worker pool per partition
5. Compute stats

Map discovery and the universe query are required: if either fails the run
aborts. A failed map search or hostname lookup is recorded and skipped.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from shieldaudit.util.errors import ErrorCollector
from shieldaudit.util.log import get_logger, log_banner
from shieldaudit.util.time import elapsed_seconds, now_utc
from shieldaudit.util.types import AuditConfig, AuditMode, AuditResult

from .assemble import resolve_mode
from .classify import MapClassifier, UnprotectedClassifier, discover_map_names
from .enrich import HostnameEnricher
from .papi import queries
from .stats import AuditStats, compute_stats

logger = get_logger(__name__)


@dataclass
class AuditReport:
    """Everything a finished run hands to the console and the writers."""
    result: AuditResult
    stats: AuditStats
    mode: AuditMode
    map_names: List[str]
    errors: ErrorCollector
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def error_count(self) -> int:
        return self.errors.count


class AuditRunner:
    """Runs the classification and enrichment phases against one client.

    client must provide search_properties, get_rule_values and
    resolve_hostnames (see papi.client.PapiClient).
    """

    def __init__(self, config: AuditConfig, client, errors: Optional[ErrorCollector] = None):
        self.config = config
        self.client = client
        self.errors = errors or ErrorCollector()
        # Validate flags before the first API call
        self.mode = resolve_mode(config.show_protected, config.show_unprotected, config.single_map)

    @property
    def needs_unprotected(self) -> bool:
        return not self.config.single_map and self.mode is not AuditMode.PROTECTED_ONLY

    def run(self) -> AuditReport:
        start_time = now_utc()
        environment = self.config.environment

        log_banner(logger, f"SiteShield audit ({environment.value}, mode={self.mode.value})")

        logger.info("Phase 1: Shield map resolution")
        if self.config.single_map:
            map_names = [self.config.map_name]
            logger.info(f"Auditing single map {self.config.map_name}")
        else:
            map_names = discover_map_names(self.client, environment, self.errors)

        logger.info("Phase 2: Protected classification")
        buckets = MapClassifier(self.client, environment, self.errors).classify(map_names)

        unprotected = []
        if self.needs_unprotected:
            logger.info("Phase 3: Unprotected classification")
            classifier = UnprotectedClassifier(self.client, environment, self.config.universe_match)
            unprotected = classifier.classify(buckets)
        else:
            logger.info("Phase 3: Skipped (unprotected set not needed for this mode)")

        logger.info("Phase 4: Hostname enrichment")
        if self.mode is not AuditMode.UNPROTECTED_ONLY:
            buckets = self._enricher().enrich_buckets(buckets)
        if unprotected:
            unprotected = self._enricher().enrich(unprotected, desc="Resolving unprotected hostnames")

        logger.info("Phase 5: Stats")
        result = AuditResult(protected=buckets, unprotected=unprotected)
        stats = compute_stats(result)

        metadata = {
            'start_time': start_time.isoformat(),
            'end_time': now_utc().isoformat(),
            'duration_seconds': elapsed_seconds(start_time),
            'environment': environment.value,
            'mode': self.mode.value,
            'map_count': len(map_names),
            'bucket_count': len(buckets),
            'universe_query': queries.universe(self.config.universe_match).match if self.needs_unprotected else None,
            # Properties without the universe marker behavior are not seen
            'universe_is_approximate': self.needs_unprotected,
            'error_count': self.errors.count,
            'config': self.config.to_dict(),
        }

        logger.info(f"Audit finished in {metadata['duration_seconds']}s with {self.errors.count} warnings")
        return AuditReport(result=result, stats=stats, mode=self.mode, map_names=map_names,
                           errors=self.errors, metadata=metadata)

    def _enricher(self) -> HostnameEnricher:
        # Fresh pool per batch
        return HostnameEnricher(
            self.client,
            self.errors,
            max_workers=self.config.max_workers,
            show_progress=self.config.show_progress,
        )
