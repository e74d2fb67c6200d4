"""Tests for ClientConfig, DialerConfig and RetryPolicy."""

import dataclasses

import pytest

from resilient_http import (
    DEFAULT_RETRY_POLICY,
    ClientConfig,
    DialerConfig,
    RetryPolicy,
    proxy_from_environment,
)


class TestClientConfig:
    """Tests for ClientConfig dataclass."""

    def test_default_values(self):
        """Test default configuration values."""
        config = ClientConfig()

        assert config.timeout == 15.0
        assert config.tls_handshake_timeout == 5.0
        assert config.response_header_timeout == 15.0
        assert config.idle_conn_timeout == 90.0
        assert config.expect_continue_timeout == 1.0
        assert config.max_idle_conns == 100
        assert config.max_idle_conns_per_host == 100
        assert config.http2 is True
        assert config.proxy is proxy_from_environment
        assert config.dialer == DialerConfig(connect_timeout=5.0, keep_alive=15.0)
        assert config.transport is None
        assert config.follow_redirects is True
        assert config.max_redirects == 10

    def test_frozen(self):
        """Test configuration cannot be mutated in place."""
        config = ClientConfig()

        with pytest.raises(dataclasses.FrozenInstanceError):
            config.timeout = 1.0

    def test_validation_zero_timeout(self):
        """Test validation rejects zero timeout."""
        with pytest.raises(ValueError, match="timeout must be > 0"):
            ClientConfig(timeout=0)

    def test_validation_negative_tls_timeout(self):
        """Test validation rejects negative TLS handshake timeout."""
        with pytest.raises(ValueError, match="tls_handshake_timeout must be > 0"):
            ClientConfig(tls_handshake_timeout=-1)

    def test_validation_response_header_timeout(self):
        """Test validation rejects zero response header timeout."""
        with pytest.raises(ValueError, match="response_header_timeout must be > 0"):
            ClientConfig(response_header_timeout=0)

    def test_validation_idle_conn_timeout(self):
        """Test validation rejects zero idle connection timeout."""
        with pytest.raises(ValueError, match="idle_conn_timeout must be > 0"):
            ClientConfig(idle_conn_timeout=0)

    def test_validation_expect_continue_timeout(self):
        """Test validation rejects negative expect-continue timeout."""
        with pytest.raises(ValueError, match="expect_continue_timeout must be >= 0"):
            ClientConfig(expect_continue_timeout=-0.5)

    def test_zero_expect_continue_allowed(self):
        """Test zero expect-continue timeout is allowed."""
        assert ClientConfig(expect_continue_timeout=0).expect_continue_timeout == 0

    def test_validation_pool_sizes(self):
        """Test validation rejects non-positive pool sizes."""
        with pytest.raises(ValueError, match="max_idle_conns must be >= 1"):
            ClientConfig(max_idle_conns=0)

        with pytest.raises(ValueError, match="max_idle_conns_per_host must be >= 1"):
            ClientConfig(max_idle_conns_per_host=-3)

    def test_validation_max_redirects(self):
        """Test validation rejects negative redirect limit."""
        with pytest.raises(ValueError, match="max_redirects must be >= 0"):
            ClientConfig(max_redirects=-1)

    def test_transport_overrides_empty_by_default(self):
        """Test a default config overrides no transport fields."""
        assert ClientConfig().transport_overrides() == []

    def test_transport_overrides(self):
        """Test transport-targeted fields that differ from defaults are reported."""
        config = ClientConfig(
            timeout=3.0,
            max_idle_conns=5,
            http2=False,
            dialer=DialerConfig(keep_alive=30.0),
        )

        assert sorted(config.transport_overrides()) == ["dialer", "http2", "max_idle_conns"]


class TestDialerConfig:
    """Tests for DialerConfig dataclass."""

    def test_default_values(self):
        """Test default dialer values."""
        dialer = DialerConfig()

        assert dialer.connect_timeout == 5.0
        assert dialer.keep_alive == 15.0

    def test_validation(self):
        """Test validation rejects non-positive values."""
        with pytest.raises(ValueError, match="connect_timeout must be > 0"):
            DialerConfig(connect_timeout=0)

        with pytest.raises(ValueError, match="keep_alive must be > 0"):
            DialerConfig(keep_alive=-1)


class TestRetryPolicy:
    """Tests for RetryPolicy dataclass."""

    def test_default_values(self):
        """Test default policy values."""
        policy = RetryPolicy()

        assert policy.max_attempts == 5
        assert policy.base_delay == 0.5
        assert policy.max_delay == 3.0
        assert policy.multiplier == 2.0
        assert DEFAULT_RETRY_POLICY == policy

    def test_default_delay_schedule(self):
        """Test delays for attempts 0..4 are 0.5, 1, 2, 3 (capped), 3 (capped)."""
        policy = RetryPolicy()

        assert [policy.delay_for(i) for i in range(5)] == [0.5, 1.0, 2.0, 3.0, 3.0]

    @pytest.mark.parametrize(
        "base,cap,expected",
        [
            (0.1, 1.0, [0.1, 0.2, 0.4, 0.8, 1.0]),
            (1.0, 5.0, [1.0, 2.0, 4.0, 5.0, 5.0]),
            (0.25, 0.25, [0.25, 0.25, 0.25, 0.25, 0.25]),
        ],
    )
    def test_custom_delay_schedule(self, base, cap, expected):
        """Test delay_for(i) == min(base * 2**i, cap)."""
        policy = RetryPolicy(base_delay=base, max_delay=cap)

        assert [policy.delay_for(i) for i in range(5)] == pytest.approx(expected)

    def test_custom_multiplier(self):
        """Test a non-default multiplier."""
        policy = RetryPolicy(base_delay=1.0, max_delay=100.0, multiplier=3.0)

        assert policy.delays() == [1.0, 3.0, 9.0, 27.0]

    def test_delays_skip_last_attempt(self):
        """Test only the gaps between attempts are listed."""
        assert RetryPolicy().delays() == [0.5, 1.0, 2.0, 3.0]
        assert RetryPolicy(max_attempts=1).delays() == []

    def test_max_total_delay(self):
        """Test the sleep bound is (attempts - 1) * max_delay."""
        assert RetryPolicy().max_total_delay == 12.0
        assert sum(RetryPolicy().delays()) <= RetryPolicy().max_total_delay

    @pytest.mark.parametrize("multiplier", [2, 2.0, 10.0])
    def test_large_attempt_index_capped(self, multiplier):
        """Test huge attempt indices return the cap instead of overflowing."""
        policy = RetryPolicy(max_attempts=5000, multiplier=multiplier)

        assert policy.delay_for(1100) == 3.0
        assert policy.delay_for(4998) == 3.0
        assert policy.delays()[-1] == 3.0

    def test_negative_attempt_rejected(self):
        """Test delay_for rejects negative attempt indices."""
        with pytest.raises(ValueError, match="attempt must be >= 0"):
            RetryPolicy().delay_for(-1)

    def test_validation(self):
        """Test policy validation."""
        with pytest.raises(ValueError, match="max_attempts must be >= 1"):
            RetryPolicy(max_attempts=0)

        with pytest.raises(ValueError, match="base_delay must be >= 0"):
            RetryPolicy(base_delay=-0.1)

        with pytest.raises(ValueError, match="max_delay must be >= base_delay"):
            RetryPolicy(base_delay=2.0, max_delay=1.0)

        with pytest.raises(ValueError, match="multiplier must be >= 1"):
            RetryPolicy(multiplier=0.5)
