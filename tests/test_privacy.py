"""End-to-end tests through the public privacy surface."""

import os

from rodoguard import privacy


def test_outbound_and_inbound_flow(override_settings):
    text = "Klient: Jan Kowalski, PESEL 92010112343"
    assert privacy.contains_sensitive_data(text)

    result = privacy.detect(text)
    anonymizer = privacy.Anonymizer()
    outbound = anonymizer.anonymize(text)
    privacy.record(
        action=privacy.PrivacyAction.ROUTE_CLOUD_ANON,
        reason="Cloud processing with anonymization",
        session_ref="sess-42",
        pii_match_count=len(result.spans),
        pii_kinds=result.kinds,
        anonymization_count=anonymizer.mapping_count,
    )

    reply = "Szanowny <<RODO_OSOBA_1>>, sprawa przyjęta."
    inbound = privacy.strip_residual_placeholders(anonymizer.deanonymize(reply))

    assert outbound == "Klient: <<RODO_OSOBA_1>>, PESEL <<RODO_PESEL_1>>"
    assert inbound == "Szanowny Jan Kowalski, sprawa przyjęta."

    entries = privacy.query(session_ref="sess-42")
    assert len(entries) == 1
    assert entries[0].pii_kinds == [privacy.PiiKind.PERSON_NAME, privacy.PiiKind.PESEL]
    assert entries[0].anonymization_count == 2
    ledger_text = override_settings.get_audit_path().read_text(encoding="utf-8")
    assert "Kowalski" not in ledger_text
    assert "92010112343" not in ledger_text


def test_store_bytes_round_trip(override_settings):
    key = privacy.resolve_key()
    assert key is not None

    sealed = privacy.encrypt_container(b'{"sessions": []}', key)

    assert privacy.is_encrypted_container(sealed)
    assert privacy.decrypt_container(sealed, key) == b'{"sessions": []}'
    assert privacy.decrypt_container(sealed, os.urandom(32)) is None
