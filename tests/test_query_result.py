from tdsproto.query_result import QueryResult


def test_query_results_sum_rows_affected():
    result = QueryResult(2)
    result.extend([QueryResult(3), QueryResult(5)])
    assert result.rows_affected == 10


def test_extend_with_nothing_keeps_count():
    result = QueryResult(4)
    result.extend([])
    assert result.rows_affected == 4


def test_default_is_zero_and_accepts_generator():
    result = QueryResult()
    result.extend(QueryResult(n) for n in (1, 1))
    assert result == QueryResult(2)