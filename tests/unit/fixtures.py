"""
Test data builders for Lambda function tests.

Provides factory functions for creating requests, API Gateway events and
SQS records with sensible defaults and customization options.
"""

import json
from typing import Any, Dict, List, Optional
from uuid import uuid4


def i18n(pt: str, en: Optional[str] = None, es: Optional[str] = None) -> Dict[str, str]:
    """I18n value, other languages defaulting to the Portuguese text."""
    return {"pt": pt, "en": en if en is not None else pt, "es": es if es is not None else pt}


def make_article_request(**overrides: Any) -> Dict[str, Any]:
    request = {
        "id": "festival-de-inverno",
        "title": i18n("Festival de Inverno", "Winter Festival", "Festival de Invierno"),
        "slug": i18n("festival-de-inverno", "winter-festival", "festival-de-invierno"),
        "body": i18n("Programação completa", "Full schedule", "Programación completa"),
        "heroImage": "https://cdn.example.com/hero.jpg",
        "thumbnail": "https://cdn.example.com/thumb.jpg",
        "publicationDate": "2026-07-01T12:00:00Z",
        "active": True,
    }
    request.update(overrides)
    return request


def make_category_request(**overrides: Any) -> Dict[str, Any]:
    request = {
        "id": "arte",
        "name": i18n("Arte", "Art", "Arte"),
        "slug": i18n("arte", "art", "arte"),
        "description": i18n("Exposições e galerias"),
        "parent_id": None,
        "active": True,
    }
    request.update(overrides)
    return request


def make_company_request(**overrides: Any) -> Dict[str, Any]:
    request = {
        "id": "teatro-municipal",
        "name": "Teatro Municipal",
        "slug": "teatro-municipal",
        "address": {
            "street": "Praça Ramos de Azevedo",
            "number": "s/n",
            "complement": "",
            "district": "República",
            "city": "São Paulo",
            "state": "SP",
            "state_full": "São Paulo",
            "postal_code": "01037-010",
            "country": "Brasil",
            "country_code": "br",
        },
        "geo": {"lat": -23.5452, "lng": -46.6388},
        "location": "sao-paulo",
        "active": True,
    }
    request.update(overrides)
    return request


def make_event_request(**overrides: Any) -> Dict[str, Any]:
    request = {
        "id": "concerto-de-abertura",
        "title": i18n("Concerto de Abertura", "Opening Concert", "Concierto de Apertura"),
        "slug": i18n("concerto-de-abertura", "opening-concert", "concierto-de-apertura"),
        "body": i18n("Orquestra sinfônica"),
        "category": "musica",
        "company": "teatro-municipal",
        "heroImage": "https://cdn.example.com/concert.jpg",
        "thumbnail": "https://cdn.example.com/concert-thumb.jpg",
        "startDate": "2030-03-10T21:00:00Z",
        "endDate": "2030-03-10T23:00:00Z",
        "pricing": 50,
        "externalTicketLink": "https://tickets.example.com/concerto",
        "facilities": ["accessible", "parking"],
        "sponsored": False,
        "active": True,
    }
    request.update(overrides)
    return request


def make_location_request(**overrides: Any) -> Dict[str, Any]:
    request = {
        "id": "sao-paulo",
        "country": "Brasil",
        "state": "SP",
        "city": "São Paulo",
        "districtsAndSlugs": {"República": "republica", "Vila Madalena": "vila-madalena"},
        "active": True,
    }
    request.update(overrides)
    return request


def make_api_event(
    method: str,
    resource: str,
    entity_id: Optional[str] = None,
    body: Any = None,
    query: Optional[Dict[str, str]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> Dict[str, Any]:
    """API Gateway proxy event."""
    return {
        "httpMethod": method,
        "resource": resource,
        "path": resource.replace("{id}", entity_id or ""),
        "pathParameters": {"id": entity_id} if entity_id is not None else None,
        "queryStringParameters": query,
        "headers": headers or {},
        "body": body if body is None or isinstance(body, str) else json.dumps(body),
        "requestContext": {"requestId": f"req-{uuid4().hex[:8]}"},
    }


def make_sqs_record(entity_id: Optional[str] = None, body: Optional[str] = None, sns_envelope: bool = False) -> Dict[str, Any]:
    """SQS record carrying a change payload, raw or inside an SNS envelope."""
    if body is None:
        body = json.dumps({"id": entity_id})
        if sns_envelope:
            body = json.dumps({"Type": "Notification", "MessageId": uuid4().hex, "Message": body})
    return {"messageId": f"msg-{uuid4().hex[:8]}", "body": body, "eventSource": "aws:sqs"}


def make_sqs_event(records: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {"Records": records}


def response_body(response: Dict[str, Any]) -> Dict[str, Any]:
    """Decoded body of a proxy response."""
    return json.loads(response["body"])
