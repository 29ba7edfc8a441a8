"""Unit tests for awsst.credentials module."""

import pytest
from unittest.mock import Mock
from datetime import datetime, timedelta, timezone
from freezegun import freeze_time
from botocore.exceptions import ClientError

from awsst.credentials import (
    Credential,
    CredentialStore,
    EXPIRATION_FORMAT,
    base_name,
    format_expiration,
    is_managed_name,
    managed_name,
)
from awsst.profiles import Profile


def expiring_in(delta):
    return (datetime.now() + delta).strftime(EXPIRATION_FORMAT)


def make_store():
    return CredentialStore({
        'prod': {
            'aws_access_key_id': 'AKIAPROD',
            'aws_secret_access_key': 'prodSecret==',
            'mfa_serial': 'arn:aws:iam::123456789012:mfa/alice',
        },
        'dev': {
            'aws_access_key_id': 'AKIADEV',
            'aws_secret_access_key': 'devSecret',
        },
    })


class TestNames:
    """Tests for managed name helpers."""
    
    def test_managed_name(self):
        """Test K-01: Suffix is appended."""
        assert managed_name('prod') == 'prod-awsst'
    
    def test_is_managed_name(self):
        """Test K-02: Only the suffix marks a managed entry."""
        assert is_managed_name('prod-awsst') is True
        assert is_managed_name('awsst-prod') is False
        assert is_managed_name('prod') is False
    
    def test_base_name(self):
        """Test K-03: Suffix is stripped."""
        assert base_name('prod-awsst') == 'prod'
        assert base_name('prod') == 'prod'


class TestCredential:
    """Tests for the Credential entity."""
    
    def test_from_section_and_back(self):
        """Test K-04: Known keys map to fields, unknown keys are kept."""
        values = {
            'aws_access_key_id': 'AKIA',
            'aws_secret_access_key': 'secret',
            'role_arn': 'arn:aws:iam::123456789012:role/Deploy',
            'assumed_role': 'true',
            'region': 'us-west-2',
        }
        
        credential = Credential.from_section('prod', values)
        
        assert credential.access_key_id == 'AKIA'
        assert credential.role_arn == 'arn:aws:iam::123456789012:role/Deploy'
        assert credential.assumed_role is True
        assert credential.extra == {'region': 'us-west-2'}
        assert credential.to_section() == values
    
    def test_to_section_omits_unset(self):
        """Test K-05: Unset fields are not written."""
        credential = Credential.from_configure('prod', 'AKIA', 'secret')
        
        assert credential.to_section() == {
            'aws_access_key_id': 'AKIA',
            'aws_secret_access_key': 'secret',
        }
    
    def test_from_configure_empty_mfa(self):
        """Test K-06: Empty MFA answer means no device."""
        credential = Credential.from_configure('prod', 'AKIA', 'secret', '')
        
        assert credential.mfa_serial is None
    
    def test_no_expiration_is_expired(self):
        """Test K-07: Missing expiration always needs rotation."""
        assert Credential(name='prod').is_expired() is True
    
    @freeze_time("2025-11-24 12:00:00")
    def test_expiring_after_margin(self):
        """Test K-08: 3h 1m left is still valid."""
        credential = Credential(name='prod', expiration=expiring_in(timedelta(hours=3, minutes=1)))
        
        assert credential.is_expired() is False
    
    @freeze_time("2025-11-24 12:00:00")
    def test_expiring_within_margin(self):
        """Test K-09: 2h 59m left needs rotation."""
        credential = Credential(name='prod', expiration=expiring_in(timedelta(hours=2, minutes=59)))
        
        assert credential.is_expired() is True
    
    @freeze_time("2025-11-24 12:00:00")
    def test_already_expired(self):
        """Test K-10: Past expiration needs rotation."""
        credential = Credential(name='prod', expiration=expiring_in(timedelta(hours=-1)))
        
        assert credential.is_expired() is True
    
    def test_unreadable_expiration(self):
        """Test K-11: Garbage expiration counts as expired."""
        assert Credential(name='prod', expiration='tomorrow').is_expired() is True
    
    def test_apply_session(self, sts_credentials):
        """Test K-12: Transient fields are replaced."""
        credential = Credential(name='prod', access_key_id='AKIAOLD', mfa_serial='arn:mfa')
        
        credential.apply_session(sts_credentials)
        
        assert credential.access_key_id == 'ASIANEWKEY'
        assert credential.secret_access_key == 'newSecret/abc=='
        assert credential.session_token == 'FwoGZXIvYXdzEBYaDNewToken=='
        assert credential.security_token == credential.session_token
        assert credential.expiration == format_expiration(sts_credentials['Expiration'])
        assert credential.mfa_serial == 'arn:mfa'


class TestFormatExpiration:
    """Tests for format_expiration() function."""
    
    def test_aware_datetime_in_local_time(self):
        """Test K-13: Aware timestamps are converted to local time."""
        value = datetime(2025, 11, 25, 10, 45, 30, tzinfo=timezone.utc)
        
        assert format_expiration(value) == value.astimezone().strftime('%Y-%m-%d %H:%M:%S')
    
    def test_naive_datetime(self):
        """Test K-14: Naive timestamps are formatted as is."""
        assert format_expiration(datetime(2025, 11, 25, 10, 45, 30)) == '2025-11-25 10:45:30'
    
    def test_none(self):
        """Test K-15: No expiration."""
        assert format_expiration(None) is None


class TestCredentialStore:
    """Tests for CredentialStore."""
    
    def test_load_splits_namespaces(self):
        """Test K-16: Suffixed sections go to the managed collection."""
        store = CredentialStore({
            'prod': {'aws_access_key_id': 'ASIA'},
            'prod-awsst': {'aws_access_key_id': 'AKIA'},
        })
        
        assert [c.name for c in store.bases] == ['prod']
        assert [c.name for c in store.originals] == ['prod-awsst']
    
    def test_exists_only_for_base(self):
        """Test K-17: A lone managed entry doesn't make a profile exist."""
        store = CredentialStore({'orphan-awsst': {'aws_access_key_id': 'AKIA'}})
        
        assert store.exists('orphan') is False
        assert store.exists('orphan-awsst') is False
    
    def test_resolve_for_use_missing(self):
        """Test K-18: Missing base entry raises KeyError."""
        with pytest.raises(KeyError):
            make_store().resolve_for_use('missing')
    
    @freeze_time("2025-11-24 12:00:00")
    def test_needs_rotation_not_due(self):
        """Test K-19: Valid session and no force."""
        store = make_store()
        store.get_base('prod').expiration = expiring_in(timedelta(hours=10))
        
        assert store.needs_rotation('prod', force=False) is None
        assert store.originals == []
    
    @freeze_time("2025-11-24 12:00:00")
    def test_needs_rotation_forced(self):
        """Test K-20: Force rotates a valid session."""
        store = make_store()
        store.get_base('prod').expiration = expiring_in(timedelta(hours=10))
        
        candidate = store.needs_rotation('prod', force=True)
        
        assert candidate.name == 'prod-awsst'
    
    def test_needs_rotation_creates_managed(self):
        """Test K-21: First rotation clones the base entry."""
        store = make_store()
        
        candidate = store.needs_rotation('prod')
        
        assert candidate.name == 'prod-awsst'
        assert candidate.access_key_id == 'AKIAPROD'
        assert candidate.mfa_serial == 'arn:aws:iam::123456789012:mfa/alice'
        assert store.get_managed('prod') is candidate
        assert candidate is not store.get_base('prod')
    
    def test_needs_rotation_prefers_managed(self):
        """Test K-22: Existing managed entry is used as is."""
        store = CredentialStore({
            'prod': {'aws_access_key_id': 'ASIATEMP', 'aws_session_token': 'token'},
            'prod-awsst': {'aws_access_key_id': 'AKIALONG', 'aws_secret_access_key': 'long'},
        })
        
        candidate = store.needs_rotation('prod')
        
        assert candidate.access_key_id == 'AKIALONG'
        assert len(store.originals) == 1
    
    def test_commit_first_rotation(self, sts_credentials):
        """Test K-23: Commit creates the managed copy when missing."""
        store = make_store()
        
        updated = store.commit_rotation(Profile(name='prod'), 'prod', sts_credentials)
        
        assert updated is store.get_base('prod')
        assert updated.access_key_id == 'ASIANEWKEY'
        assert store.get_managed('prod').access_key_id == 'AKIAPROD'
    
    def test_commit_with_suffixed_name(self, sts_credentials):
        """Test K-24: Suffixed input name updates the base entry."""
        store = make_store()
        store.needs_rotation('prod')
        
        updated = store.commit_rotation(Profile(name='prod'), 'prod-awsst', sts_credentials)
        
        assert updated.name == 'prod'
        assert updated.access_key_id == 'ASIANEWKEY'
        assert store.get_managed('prod').access_key_id == 'AKIAPROD'
        assert len(store.originals) == 1
    
    def test_commit_no_match(self, sts_credentials):
        """Test K-25: No base entry means no commit."""
        store = make_store()
        
        assert store.commit_rotation(Profile(name='x'), 'missing', sts_credentials) is None
        assert store.originals == []
    
    def test_commit_resolves_account(self, sts_credentials):
        """Test K-26: Account is set from the resolver."""
        store = make_store()
        resolver = Mock(return_value='123456789012')
        config = Profile(name='prod', region='us-east-1')
        
        updated = store.commit_rotation(config, 'prod', sts_credentials, resolver)
        
        assert updated.account == '123456789012'
        resolver.assert_called_once_with(config, updated)
    
    def test_commit_account_failure_ignored(self, sts_credentials):
        """Test K-27: Account lookup errors don't fail the commit."""
        store = make_store()
        store.get_base('prod').account = '999999999999'
        resolver = Mock(side_effect=ClientError(
            {'Error': {'Code': 'AccessDenied', 'Message': 'denied'}},
            'GetCallerIdentity'
        ))
        
        updated = store.commit_rotation(Profile(name='prod'), 'prod', sts_credentials, resolver)
        
        assert updated.access_key_id == 'ASIANEWKEY'
        assert updated.account == '999999999999'
    
    def test_second_rotation_keeps_managed(self, sts_credentials):
        """Test K-28: Managed entry is untouched by later rotations."""
        store = make_store()
        first = store.needs_rotation('prod')
        store.commit_rotation(Profile(name='prod'), first.name, sts_credentials)
        managed_before = store.get_managed('prod').to_section()
        
        second = store.needs_rotation('prod', force=True)
        newer = dict(sts_credentials, AccessKeyId='ASIANEWER', SessionToken='newer')
        updated = store.commit_rotation(Profile(name='prod'), second.name, newer)
        
        assert store.get_managed('prod').to_section() == managed_before
        assert updated.access_key_id == 'ASIANEWER'
        assert updated.session_token == 'newer'
    
    def test_resolve_preferring_managed(self):
        """Test K-29: Managed entry wins over base entry."""
        store = make_store()
        assert store.resolve_preferring_managed('prod').name == 'prod'
        
        store.needs_rotation('prod')
        
        assert store.resolve_preferring_managed('prod').name == 'prod-awsst'
        assert store.resolve_preferring_managed('missing') is None
    
    def test_add_replaces_same_name(self):
        """Test K-30: Adding an existing name replaces it."""
        store = make_store()
        
        store.add(Credential.from_configure('dev', 'AKIANEW', 'new'))
        store.add(Credential.from_configure('stage', 'AKIASTAGE', 'stage'))
        
        assert [c.name for c in store.bases] == ['prod', 'dev', 'stage']
        assert store.get_base('dev').access_key_id == 'AKIANEW'
    
    def test_remove_cascades(self):
        """Test K-31: Removing a profile removes its managed entry."""
        store = CredentialStore({
            'prod': {'aws_access_key_id': 'ASIA'},
            'prod-awsst': {'aws_access_key_id': 'AKIA'},
            'dev': {'aws_access_key_id': 'AKIADEV'},
            'dev-awsst': {'aws_access_key_id': 'AKIADEV'},
        })
        
        store.remove('prod')
        
        assert set(store.to_raw()) == {'dev', 'dev-awsst'}
    
    def test_to_raw_round_trip(self):
        """Test K-32: Loading and dumping keeps every section."""
        sections = {
            'prod': {'aws_access_key_id': 'ASIA', 'expiration': '2025-11-24 12:00:00'},
            'prod-awsst': {'aws_access_key_id': 'AKIA', 'mfa_serial': 'arn:mfa'},
        }
        
        assert CredentialStore(sections).to_raw() == sections
