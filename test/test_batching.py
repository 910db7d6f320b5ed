"""测试 TokenBatchPlanner：保序划分、预算边界、超大单条"""
import pytest

from subkit.errors import BatchSizeError
from subkit.pipeline.processors.batching import check_item_count, estimate_tokens, plan

from conftest import make_items


def test_estimate_tokens_uses_utf8_bytes():
    assert estimate_tokens("abc") == 1
    assert estimate_tokens("abcd") == 2
    assert estimate_tokens("") == 0
    # 3 个中文字符 = 9 字节
    assert estimate_tokens("你好吗") == 3


def test_everything_fits_in_one_batch():
    items = make_items("a" * 30, "b" * 30, "c" * 30)
    batches = plan(items, 100, 3)
    assert len(batches) == 1
    assert batches[0].batch_number == 1
    assert batches[0].total_batches == 1
    assert [i.index for i in batches[0].items] == [1, 2, 3]


def test_budget_closes_batches_in_order():
    # 每条 10 token，预算 25 → 每批 2 条
    items = make_items(*["x" * 30] * 5)
    batches = plan(items, 25, 3)
    assert [[i.index for i in b.items] for b in batches] == [[1, 2], [3, 4], [5]]
    assert [b.batch_number for b in batches] == [1, 2, 3]
    assert all(b.total_batches == 3 for b in batches)


def test_exact_budget_is_not_exceeded():
    items = make_items("x" * 30, "x" * 30)
    assert len(plan(items, 20, 3)) == 1
    assert len(plan(items, 19, 3)) == 2


def test_oversized_item_gets_its_own_batch():
    items = make_items("a" * 3, "b" * 300, "c" * 3)
    batches = plan(items, 10, 3)
    assert [[i.index for i in b.items] for b in batches] == [[1], [2], [3]]


def test_batches_partition_input():
    items = make_items(*[("y" * (i * 7 % 40 + 1)) for i in range(40)])
    batches = plan(items, 20, 3)
    flattened = [i.index for b in batches for i in b.items]
    assert flattened == [i.index for i in items]
    assert plan(items, 20, 3) == batches


def test_max_items_per_batch():
    items = make_items(*["z"] * 7)
    batches = plan(items, 75_000, 3, max_items=3)
    assert [len(b.items) for b in batches] == [3, 3, 1]


def test_empty_input_plans_nothing():
    assert plan([], 100, 3) == []


def test_invalid_budget_rejected():
    with pytest.raises(ValueError):
        plan(make_items("a"), 0, 3)


def test_item_count_ceiling():
    check_item_count(50, 50)
    with pytest.raises(BatchSizeError) as exc:
        check_item_count(60, 50)
    assert "Maximum 50 subtitles per request" in exc.value.message
