import pytest

from psasctl.core.entities import PanelUser, SocksUser, TrustUser
from psasctl.core.exceptions import AmbiguousError, EmptyIdentifierError, NotFoundError
from psasctl.core.lib.resolver import PANEL_USER, SOCKS_USER, TRUST_USER, find_by_id, resolve

ALICE_ID = "0f8e2a4c-1111-4222-8333-944455556666"
PANEL_USERS = [
    PanelUser(ALICE_ID, "alice"),
    PanelUser("1a2b3c4d-aaaa-4bbb-8ccc-dddddddddddd", "Alice"),
    PanelUser("5e6f7a8b-0000-4000-8000-000000000001", "alicia"),
    PanelUser("9c9c9c9c-1234-4abc-8def-123456789abc", "bob"),
]


class TestPanelUsers:
    def test_uuid_lookup_ignores_case(self):
        assert resolve(ALICE_ID.upper(), PANEL_USERS, PANEL_USER) is PANEL_USERS[0]

    def test_unknown_uuid_is_not_found_without_name_fallback(self):
        with pytest.raises(NotFoundError, match="not found by id"):
            resolve("ffffffff-ffff-4fff-8fff-ffffffffffff", PANEL_USERS, PANEL_USER)

    def test_custom_id_lookup_is_used(self):
        calls = []

        def lookup(uuid):
            calls.append(uuid)
            return PANEL_USERS[3]

        assert resolve(f"  {ALICE_ID}  ", PANEL_USERS, PANEL_USER, lookup) is PANEL_USERS[3]
        assert calls == [ALICE_ID]

    def test_case_insensitive_exact_duplicates_are_ambiguous(self):
        with pytest.raises(AmbiguousError) as info:
            resolve("ALICE", PANEL_USERS, PANEL_USER)
        assert info.value.candidates == PANEL_USERS[:2]
        assert f"alice({ALICE_ID})" in str(info.value)

    def test_exact_name_wins_over_fragments(self):
        assert resolve("bob", PANEL_USERS, PANEL_USER) is PANEL_USERS[3]

    def test_unique_fragment(self):
        assert resolve("lici", PANEL_USERS, PANEL_USER) is PANEL_USERS[2]

    def test_fragment_does_not_search_uuids(self):
        with pytest.raises(NotFoundError):
            resolve("9c9c", PANEL_USERS, PANEL_USER)

    def test_ambiguous_fragment(self):
        with pytest.raises(AmbiguousError, match="multiple panel users match 'ali'"):
            resolve("ali", PANEL_USERS, PANEL_USER)


class TestTrustUsers:
    USERS = [TrustUser("alice", "pw1"), TrustUser("alex", "pw2"), TrustUser("bob", "pw3")]

    def test_exact_name(self):
        assert resolve(" bob ", self.USERS, TRUST_USER) is self.USERS[2]

    def test_fragment(self):
        assert resolve("LIC", self.USERS, TRUST_USER) is self.USERS[0]

    def test_ambiguous_fragment_lists_candidates(self):
        with pytest.raises(AmbiguousError) as info:
            resolve("al", self.USERS, TRUST_USER)
        assert [u.username for u in info.value.candidates] == ["alice", "alex"]

    def test_exact_name_beside_longer_name(self):
        users = [TrustUser("bob", "pw1"), TrustUser("bob-2", "pw2")]
        assert resolve("bob", users, TRUST_USER) is users[0]
        with pytest.raises(AmbiguousError) as info:
            resolve("bo", users, TRUST_USER)
        assert info.value.candidates == users

    def test_not_found(self):
        with pytest.raises(NotFoundError, match="trust user not found: carol"):
            resolve("carol", self.USERS, TRUST_USER)

    @pytest.mark.parametrize("identifier", ["", "   ", None])
    def test_empty_identifier(self, identifier):
        with pytest.raises(EmptyIdentifierError):
            resolve(identifier, self.USERS, TRUST_USER)

    def test_empty_identifier_is_a_not_found_error(self):
        with pytest.raises(NotFoundError):
            resolve("", self.USERS, TRUST_USER)


def test_socks_identifiers_are_lowercased():
    users = [SocksUser("proxyuser", "pw"), SocksUser("other", "pw")]
    assert resolve("  ProxyUser ", users, SOCKS_USER) is users[0]


def test_long_candidate_lists_are_truncated():
    users = [TrustUser(f"user{i}", "pw") for i in range(8)]
    with pytest.raises(AmbiguousError, match=r"\+3 more"):
        resolve("user", users, TRUST_USER)


def test_find_by_id():
    assert find_by_id(PANEL_USERS, ALICE_ID.upper()) is PANEL_USERS[0]
    assert find_by_id(PANEL_USERS, "missing") is None
