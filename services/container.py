from __future__ import annotations

from dataclasses import dataclass

from services.fingerprint_store import FingerprintStore, store_from_config
from services.grade_rules import get_policy
from services.mark_service import MarkService
from services.result_ledger import ResultLedger, utc_now
from services.revalidation_service import RevalidationService
from services.verifier import IntegrityVerifier


@dataclass
class ResultsServices:
    store: FingerprintStore
    ledger: ResultLedger
    verifier: IntegrityVerifier
    marks: MarkService
    revalidation: RevalidationService


def init_results(app, store=None, clock=None) -> ResultsServices:
    """Wire the results core and keep it on ``app.extensions["results"]``."""
    store = store or store_from_config(app.config)
    ledger = ResultLedger(
        store,
        policy=get_policy(app.config["GRADE_POLICY"]),
        clock=clock or utc_now,
    )
    marks = MarkService(ledger)
    services = ResultsServices(
        store=store,
        ledger=ledger,
        verifier=IntegrityVerifier(store),
        marks=marks,
        revalidation=RevalidationService(marks),
    )
    app.extensions["results"] = services
    return services


def get_services(app=None) -> ResultsServices:
    if app is None:
        from flask import current_app
        app = current_app
    return app.extensions["results"]
