import pytest
from sqlalchemy import text

from steelvault.errors import BackendUnavailable
from steelvault.models import db
from steelvault.services.table_client import QueryResult, TableClient, get_table_client


@pytest.fixture
def tables(app, seed):
    with app.app_context():
        yield get_table_client()


def test_select_with_filters_order_and_limit(tables):
    rows = (tables.table('Project').select('name, status')
            .eq('status', 'Live').order('name').execute().rows())
    assert rows == [{'name': 'Harbor Bridge', 'status': 'Live'}]

    newest = tables.table('Project').select('name').order('createdAt', ascending=False).limit(2).execute()
    assert [r['name'] for r in newest.data] == ['Harbor Bridge', 'Mill Annex']


def test_ieq_and_in_filters(tables, seed):
    user = tables.table('User').select('*').ieq('email', 'TARA@STEELVAULT.TEST').maybe_single()
    assert user.ok and user.data['name'] == 'Tara Lead'

    clients = tables.table('Client').select('name').in_('id', [seed['clients']['acme'], seed['clients']['cobalt']])
    assert sorted(r['name'] for r in clients.execute().data) == ['Acme Steel', 'Cobalt Fabricators']


def test_missing_table_or_column_is_an_error_result(tables):
    missing = tables.table('Nope').select('*').execute()
    assert missing.error == 'relation "Nope" does not exist'
    with pytest.raises(BackendUnavailable):
        missing.rows()

    bad_column = tables.table('Project').select('nope').execute()
    assert not bad_column.ok
    assert tables.columns('Nope') == []


def test_single_and_maybe_single(tables):
    assert tables.table('User').select('*').eq('email', 'nobody@x.test').maybe_single().data is None
    assert not tables.table('User').select('*').maybe_single().ok
    assert not tables.table('User').select('*').eq('email', 'nobody@x.test').single().ok


def test_probe_uses_first_table_with_rows(app, tables):
    with app.app_context():
        db.session.execute(text('CREATE TABLE clients (id INTEGER PRIMARY KEY, name TEXT)'))
        db.session.commit()

        result = tables.probe(('Missing', 'clients', 'Client'))
        assert result.table == 'Client'
        assert len(result.data) == 3

        nothing = tables.probe(('Missing', 'clients'))
        assert nothing.ok and nothing.data == []

        failed = tables.probe(('Missing', 'AlsoMissing'))
        assert failed.error == 'relation "AlsoMissing" does not exist'


def test_update_returns_row_count(tables, seed):
    project_id = seed['projects'][3]
    result = tables.table('Project').update({'solTLId': seed['users']['omar']}).eq('id', project_id).execute()
    assert result.data == 1

    assert tables.table('Project').update({'solTLId': None}).eq('id', 9999).execute().data == 0
    assert not tables.table('Project').update({'nope': 1}).eq('id', project_id).execute().ok


def test_client_is_cached_per_app(app):
    with app.app_context():
        assert get_table_client() is get_table_client()
        assert isinstance(get_table_client(), TableClient)


def test_query_result_rows_wraps_single_row():
    assert QueryResult(data={'id': 1}).rows() == [{'id': 1}]
    assert QueryResult().rows() == []
