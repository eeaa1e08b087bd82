import pytest

from steelvault.services.field_resolver import FieldResolver, resolve_field, resolver, to_number


def test_resolve_field_prefers_canonical():
    row = {'clientId': 7, 'client_id': 9}
    assert resolve_field(row, 'clientId', ['client_id']) == 7


def test_resolve_field_uses_aliases_in_order():
    row = {'clientID': 3, 'client_id': 4}
    assert resolve_field(row, 'clientId', ['client_id', 'clientID']) == 4
    assert resolve_field(row, 'clientId', ['clientID', 'client_id']) == 3


def test_resolve_field_skips_null_but_keeps_falsy_values():
    assert resolve_field({'clientId': None, 'client_id': 0}, 'clientId', ['client_id']) == 0
    assert resolve_field({'status': ''}, 'status', ['projectStatus']) == ''


def test_resolve_field_missing_everywhere():
    assert resolve_field({'other': 1}, 'clientId', ['client_id']) is None
    assert resolve_field(None, 'clientId', ['client_id']) is None
    assert resolve_field({}, 'clientId') is None


def test_resolver_project_team_lead_variants():
    assert resolver.resolve('project', {'sol_tl_id': 5}, 'team_lead_id') == 5
    assert resolver.resolve('project', {'solTLId': 2, 'sol_tl_id': 5}, 'team_lead_id') == 2
    assert resolver.resolve_int('project', {'solTlId': '12'}, 'team_lead_id') == 12


def test_resolver_default_and_unknown_field():
    assert resolver.resolve('project', {}, 'status', 'Unknown') == 'Unknown'
    with pytest.raises(KeyError):
        resolver.resolve('project', {}, 'nonexistent')


def test_column_for_picks_first_present_candidate():
    assert resolver.column_for('project', 'team_lead_id', ['id', 'sol_tl_id', 'solTlId']) == 'solTlId'
    assert resolver.column_for('project', 'team_lead_id', ['id', 'name']) is None


def test_display_name_fallbacks():
    assert resolver.display_name('client', {'id': 4, 'name': '  ', 'companyName': 'Acme'}) == 'Acme'
    assert resolver.display_name('client', {'id': 4}) == 'Client 4'
    assert resolver.display_name('user', {'id': 2, 'first_name': 'Ada', 'last_name': 'Lee'}) == 'Ada Lee'
    assert resolver.display_name('user', {'id': 2, 'email': 'ada@example.com'}) == 'ada@example.com'
    assert resolver.display_name('user', {'id': 2}) == 'User 2'


def test_custom_alias_table():
    custom = FieldResolver({'widget': {'name': ('label', ['title'])}})
    assert custom.resolve('widget', {'title': 'Beam'}, 'name') == 'Beam'


@pytest.mark.parametrize('value,expected', [
    (None, None),
    ('', None),
    (True, None),
    ('abc', None),
    (float('nan'), None),
    ('3', 3),
    (4.0, 4),
    ('2.5', 2.5),
])
def test_to_number(value, expected):
    assert to_number(value) == expected
