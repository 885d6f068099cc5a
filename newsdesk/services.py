"""
Service wiring.

Builds the store, moderation policy, pipeline and identity provider once per
application and keeps them in app.extensions['newsdesk'].
"""

import logging
from dataclasses import dataclass

from flask import current_app

from newsdesk.auth import IdentityProvider, generate_device_id
from newsdesk.news.constants import DEVICE_ID_KEY
from newsdesk.news.moderation import RuleBasedPolicy, build_policy
from newsdesk.news.pipeline import PublicationPipeline
from newsdesk.news.store import SubmissionStore
from newsdesk.storage import KeyValueStore, build_store

logger = logging.getLogger(__name__)


@dataclass
class NewsdeskServices:
    kv: KeyValueStore
    store: SubmissionStore
    pipeline: PublicationPipeline
    identity: IdentityProvider


def resolve_device_id(config, kv: KeyValueStore) -> str:
    """
    Return the bookmark owner id for signed-out readers.

    DEVICE_ID from config wins. Otherwise the id stored under DEVICE_ID_KEY
    is reused, and the first run generates and stores one.
    """
    configured = config.get('DEVICE_ID')
    if configured and configured.strip():
        return configured.strip()

    stored = kv.get(DEVICE_ID_KEY)
    if stored:
        return str(stored[0])

    device_id = generate_device_id()
    kv.put(DEVICE_ID_KEY, [device_id])
    logger.info(f"Generated device id {device_id}")
    return device_id


def init_services(app, llm_call=None):
    from newsdesk import db

    kv = build_store(app.config, db=db)
    store = SubmissionStore(kv)
    policy = build_policy(app.config, llm_call=llm_call)
    pipeline = PublicationPipeline(store, policy=policy, fallback_policy=RuleBasedPolicy())

    with app.app_context():
        device_id = resolve_device_id(app.config, kv)

    services = NewsdeskServices(
        kv=kv, store=store, pipeline=pipeline, identity=IdentityProvider(device_id=device_id)
    )
    app.extensions['newsdesk'] = services
    logger.info(f"Moderation policy: {policy.name}")
    return services


def get_services() -> NewsdeskServices:
    return current_app.extensions['newsdesk']
