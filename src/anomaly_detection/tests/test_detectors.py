"""Tests for the anomaly detectors.

Session detectors are called directly with SessionRecords; audit detectors
run against an InMemoryAuditLog filled with timestamped records.
"""

from datetime import datetime, timedelta, timezone

import pytest

from src.anomaly_detection import detectors
from src.anomaly_detection.audit import AuditAction, AuditRecord
from src.anomaly_detection.models import AutoResponse, SecurityEventType, SecuritySeverity
from src.session_tracker.models import SessionRecord

from .conftest import NOW, add_records


def session(session_id, ip, minutes_ago=0, device_id=None):
    seen = NOW - timedelta(minutes=minutes_ago)
    return SessionRecord(
        user_id="user-1",
        session_id=session_id,
        ip_address=ip,
        device_id=device_id,
        created_at=seen,
        last_activity=seen,
    )


class TestSessionDetectors:
    def test_concurrent_sessions_needs_two_ips(self):
        same_ip = [session(f"s{i}", "10.0.0.1") for i in range(4)]
        mixed = same_ip[:3] + [session("s3", "10.0.0.2")]

        assert detectors.detect_concurrent_sessions("user-1", same_ip, 3, NOW) is None
        event = detectors.detect_concurrent_sessions("user-1", mixed, 3, NOW)
        assert event.type == SecurityEventType.CONCURRENT_SESSION
        assert event.timestamp == NOW

    def test_rapid_origin_change_counts_last_hour_only(self):
        sessions = [session(f"s{i}", f"10.0.0.{i}", minutes_ago=10 * i) for i in range(6)]
        stale = sessions[:5] + [session("s5", "10.0.0.5", minutes_ago=61)]

        event = detectors.detect_rapid_origin_change("user-1", sessions, 5, NOW)

        assert event.metadata["ips"] == [f"10.0.0.{i}" for i in range(6)]
        assert detectors.detect_rapid_origin_change("user-1", stale, 5, NOW) is None

    def test_device_change_picks_most_recent_other_device(self):
        current = session("new", "10.0.0.1", device_id="tablet")
        sessions = [
            session("a", "10.0.0.1", minutes_ago=300, device_id="laptop"),
            session("b", "10.0.0.1", minutes_ago=30, device_id="phone"),
            current,
        ]

        event = detectors.detect_device_change("user-1", sessions, current, NOW)

        assert event.metadata["previous_device"] == "phone"
        assert event.metadata["minutes_since_previous_device"] == 30

    @pytest.mark.parametrize(
        "utc_time, tz_name, expected_hour",
        [
            (datetime(2026, 6, 1, 7, 30, tzinfo=timezone.utc), "America/New_York", 3),
            (datetime(2026, 6, 1, 2, 0, tzinfo=timezone.utc), None, 2),
            (datetime(2026, 6, 1, 5, 59, tzinfo=timezone.utc), "UTC", 5),
            (datetime(2026, 6, 1, 19, 0, tzinfo=timezone.utc), "Asia/Tokyo", 4),
        ],
    )
    def test_unusual_login_time_in_local_hours(self, utc_time, tz_name, expected_hour):
        event = detectors.detect_unusual_login_time("user-1", utc_time, tz_name)

        assert event.type == SecurityEventType.UNUSUAL_LOGIN_TIME
        assert event.severity == SecuritySeverity.LOW
        assert event.auto_response == AutoResponse.NONE
        assert event.metadata["hour"] == expected_hour

    @pytest.mark.parametrize(
        "utc_time, tz_name",
        [
            (datetime(2026, 6, 1, 6, 0, tzinfo=timezone.utc), None),
            (datetime(2026, 6, 1, 1, 59, tzinfo=timezone.utc), None),
            (datetime(2026, 6, 1, 3, 0, tzinfo=timezone.utc), "America/New_York"),
        ],
    )
    def test_normal_login_time(self, utc_time, tz_name):
        assert detectors.detect_unusual_login_time("user-1", utc_time, tz_name) is None

    def test_unknown_timezone_falls_back_to_utc(self):
        at = datetime(2026, 6, 1, 3, 0, tzinfo=timezone.utc)

        event = detectors.detect_unusual_login_time("user-1", at, "Mars/Olympus_Mons")

        assert event.metadata["hour"] == 3

    def test_second_factor_failures_threshold(self):
        assert detectors.detect_excessive_second_factor_failures("user-1", 2, 3) is None
        event = detectors.detect_excessive_second_factor_failures("user-1", 3, 3)
        assert event.auto_response == AutoResponse.FORCE_LOGOUT
        assert event.severity == SecuritySeverity.HIGH

    def test_session_hijack_is_critical(self):
        event = detectors.detect_session_hijack(
            "user-1", "sess-9", "fingerprint mismatch", {"expected": "a", "actual": "b"}
        )

        assert event.severity == SecuritySeverity.CRITICAL
        assert event.auto_response == AutoResponse.FORCE_LOGOUT
        assert event.metadata["evidence"] == {"expected": "a", "actual": "b"}


@pytest.mark.asyncio
class TestAuditDetectors:
    async def test_brute_force_from_one_ip(self, audit_log):
        add_records(
            audit_log, AuditAction.LOGIN_FAILED, 5, NOW - timedelta(minutes=30),
            ip_address="198.51.100.9",
        )

        event = await detectors.detect_brute_force_login(audit_log, "user-1", "198.51.100.9", NOW)
        quiet = await detectors.detect_brute_force_login(audit_log, "user-1", "198.51.100.10", NOW)

        assert event.type == SecurityEventType.UNUSUAL_LOGIN_PATTERN
        assert event.metadata["pattern"] == "brute_force"
        assert event.metadata["failed_attempts"] == 5
        assert quiet is None

    async def test_brute_force_ignores_old_failures(self, audit_log):
        add_records(
            audit_log, AuditAction.LOGIN_FAILED, 10, NOW - timedelta(hours=2),
            ip_address="198.51.100.9",
        )

        assert await detectors.detect_brute_force_login(
            audit_log, "user-1", "198.51.100.9", NOW
        ) is None

    async def test_multi_origin_login(self, audit_log):
        for i in range(3):
            audit_log.append(
                AuditRecord(
                    action=AuditAction.LOGIN,
                    user_id="user-1",
                    ip_address=f"10.9.0.{i}",
                    timestamp=NOW - timedelta(minutes=i),
                )
            )

        event = await detectors.detect_multi_origin_login(audit_log, "user-1", NOW)

        assert event.severity == SecuritySeverity.MEDIUM
        assert event.metadata["ip_addresses"] == ["10.9.0.0", "10.9.0.1", "10.9.0.2"]
        assert await detectors.detect_multi_origin_login(audit_log, "user-2", NOW) is None

    async def test_mass_data_access(self, audit_log):
        add_records(
            audit_log, AuditAction.PHI_VIEW, 50, NOW - timedelta(minutes=5),
            user_id="user-1", resource_type="patient_record",
        )

        event = await detectors.detect_mass_data_access(
            audit_log, "user-1", "patient_record", timedelta(minutes=10), 50, NOW
        )
        below = await detectors.detect_mass_data_access(
            audit_log, "user-1", "patient_record", timedelta(minutes=10), 51, NOW
        )

        assert event.type == SecurityEventType.MASS_DATA_ACCESS
        assert event.severity == SecuritySeverity.CRITICAL
        assert event.metadata["access_count"] == 50
        assert event.metadata["window_seconds"] == 600
        assert below is None

    async def test_mass_data_access_rejects_bad_threshold(self, audit_log):
        with pytest.raises(ValueError):
            await detectors.detect_mass_data_access(
                audit_log, "user-1", "patient_record", timedelta(minutes=1), 0, NOW
            )

    async def test_compromise_after_second_factor_disabled(self, audit_log):
        audit_log.append(
            AuditRecord(
                action=AuditAction.MFA_DISABLED,
                user_id="user-1",
                timestamp=NOW - timedelta(hours=2),
            )
        )
        audit_log.append(
            AuditRecord(
                action=AuditAction.PHI_VIEW,
                user_id="user-1",
                timestamp=NOW - timedelta(hours=1),
            )
        )

        event = await detectors.detect_account_compromise(audit_log, "user-1", NOW)

        assert event.severity == SecuritySeverity.CRITICAL
        assert event.auto_response == AutoResponse.FORCE_LOGOUT
        assert event.metadata["indicator"] == "mfa_disabled"
        assert event.metadata["phi_access_count"] == 1

    async def test_compromise_after_password_change(self, audit_log):
        changed_at = NOW - timedelta(hours=3)
        audit_log.append(
            AuditRecord(action=AuditAction.PASSWORD_CHANGE, user_id="user-1", timestamp=changed_at)
        )
        add_records(
            audit_log, AuditAction.PHI_VIEW, 20, changed_at + timedelta(minutes=10),
            user_id="user-1",
        )

        event = await detectors.detect_account_compromise(audit_log, "user-1", NOW)

        assert event.severity == SecuritySeverity.HIGH
        assert event.auto_response == AutoResponse.REQUIRE_SECOND_FACTOR
        assert event.metadata["phi_access_count"] == 20

    async def test_password_change_views_after_the_hour_do_not_count(self, audit_log):
        changed_at = NOW - timedelta(hours=3)
        audit_log.append(
            AuditRecord(action=AuditAction.PASSWORD_CHANGE, user_id="user-1", timestamp=changed_at)
        )
        add_records(
            audit_log, AuditAction.PHI_VIEW, 19, changed_at + timedelta(minutes=10),
            user_id="user-1",
        )
        add_records(
            audit_log, AuditAction.PHI_VIEW, 5, changed_at + timedelta(minutes=90),
            user_id="user-1",
        )

        assert await detectors.detect_account_compromise(audit_log, "user-1", NOW) is None

    async def test_data_exfiltration(self, audit_log):
        add_records(
            audit_log, AuditAction.PHI_EXPORT, 5, NOW - timedelta(minutes=20), user_id="user-1"
        )

        event = await detectors.detect_data_exfiltration(audit_log, "user-1", NOW)

        assert event.type == SecurityEventType.DATA_EXFILTRATION
        assert event.metadata["export_count"] == 5
        assert await detectors.detect_data_exfiltration(audit_log, "user-2", NOW) is None
