"""批量重排序测试（内存存储）

测试 bulk_reorder / bulk_reorder_by_column：
1. 按给定顺序重新编号
2. 输入校验
3. 修改时间与软删除记录
4. 完成后的通知
"""

from datetime import datetime

import pytest

from ysort.sortable import InvalidInputError, SortedEventDispatcher
from tests.helpers import Card, SlottedCard, make_cards, memory_engine_for, ranks_of


OLD_TIME = datetime(2000, 1, 1)


class RecordingNotifier:
    """记录通知参数"""

    def __init__(self):
        self.calls = []

    def notify(self, entity_type_name):
        self.calls.append(entity_type_name)


class TestBulkReorder:
    """批量重排序测试"""

    def test_reorder_by_ids(self):
        """[C, A, B] 重排后 C=1, A=2, B=3"""
        engine = memory_engine_for(Card)
        a, b, c = make_cards(engine, ["A", "B", "C"])

        updated = engine.bulk_reorder([c.id, a.id, b.id])

        assert updated == 3
        assert ranks_of(engine, [c, a, b]) == [1, 2, 3]

    def test_reorder_ignores_prior_ranks(self):
        engine = memory_engine_for(Card)
        a, b, c = make_cards(engine, ["A", "B", "C"])
        engine.set_rank(a, 40)
        engine.set_rank(b, 17)

        engine.bulk_reorder([c.id, a.id, b.id])

        assert ranks_of(engine, [c, a, b]) == [1, 2, 3]

    def test_start_rank(self):
        engine = memory_engine_for(Card)
        a, b = make_cards(engine, ["A", "B"])

        engine.bulk_reorder((b.id, a.id), start_rank=10)

        assert ranks_of(engine, [b, a]) == [10, 11]

    def test_unknown_ids_are_skipped(self):
        engine = memory_engine_for(Card)
        a, b = make_cards(engine, ["A", "B"])

        updated = engine.bulk_reorder([b.id, 999, a.id])

        assert updated == 2
        assert ranks_of(engine, [b, a]) == [1, 3]

    def test_empty_list(self):
        engine = memory_engine_for(Card)
        make_cards(engine, ["A"])

        assert engine.bulk_reorder([]) == 0

    def test_reorder_by_column(self):
        """按其他唯一字段匹配"""
        engine = memory_engine_for(Card)
        a, b, c = make_cards(engine, ["A", "B", "C"])

        engine.bulk_reorder_by_column("title", ["B", "C", "A"])

        assert ranks_of(engine, [b, c, a]) == [1, 2, 3]

    def test_filter_fn(self):
        """filter_fn 返回 False 的记录不更新"""
        engine = memory_engine_for(Card)
        a, b, c = make_cards(engine, ["A", "B", "C"])

        engine.bulk_reorder([c.id, b.id, a.id], filter_fn=lambda record: record.title != "B")

        assert ranks_of(engine, [c, b, a]) == [1, 2, 3]
        engine.bulk_reorder([c.id, a.id, b.id], start_rank=5, filter_fn=lambda record: record.title != "B")
        assert ranks_of(engine, [c, a, b]) == [5, 6, 2]

    def test_grouped_reorder_writes_slots(self):
        engine = memory_engine_for(SlottedCard)
        a, b, c = make_cards(engine, ["A", "B", "C"])

        engine.bulk_reorder([b.id, c.id, a.id])

        assert [b.slot.order_column, c.slot.order_column, a.slot.order_column] == [1, 2, 3]

    def test_reaches_soft_deleted_records(self):
        """批量重排序不跳过软删除记录"""
        engine = memory_engine_for(Card)
        a, b = make_cards(engine, ["A", "B"])
        b.deleted_at = datetime.now()

        assert engine.bulk_reorder([b.id, a.id]) == 2
        assert b.order_column == 1


class TestBulkReorderInput:
    """输入校验测试"""

    @pytest.mark.parametrize("ids", [
        "123",
        b"123",
        {1, 2, 3},
        (i for i in [1, 2, 3]),
        iter([1, 2, 3]),
        {1: "a"},
        42,
        None,
    ])
    def test_rejects_non_sequence(self, ids):
        engine = memory_engine_for(Card)
        make_cards(engine, ["A", "B", "C"])

        with pytest.raises(InvalidInputError) as exc_info:
            engine.bulk_reorder(ids)

        assert exc_info.value.code == "INVALID_INPUT"
        assert exc_info.value.to_dict()["error"] == "INVALID_INPUT"

    def test_rejected_input_changes_nothing(self):
        engine = memory_engine_for(Card)
        cards = make_cards(engine, ["A", "B", "C"])

        with pytest.raises(InvalidInputError):
            engine.bulk_reorder(card.id for card in reversed(cards))

        assert ranks_of(engine, cards) == [1, 2, 3]

    def test_range_is_accepted(self):
        engine = memory_engine_for(Card)
        cards = make_cards(engine, ["A", "B", "C"])

        engine.bulk_reorder(range(3, 0, -1))

        assert ranks_of(engine, cards) == [3, 2, 1]


class TestBulkReorderTimestamps:
    """修改时间测试"""

    def test_touches_updated_at_by_default(self):
        engine = memory_engine_for(Card)
        a, = make_cards(engine, ["A"], updated_at=OLD_TIME)

        engine.bulk_reorder([a.id])

        assert a.updated_at != OLD_TIME

    def test_ignore_timestamps(self):
        engine = memory_engine_for(Card, ignore_timestamps=True)
        a, b = make_cards(engine, ["A", "B"], updated_at=OLD_TIME)

        engine.bulk_reorder([b.id, a.id])

        assert ranks_of(engine, [b, a]) == [1, 2]
        assert a.updated_at == OLD_TIME
        assert b.updated_at == OLD_TIME

    def test_moves_still_touch_updated_at(self):
        """ignore_timestamps 只作用于批量重排序"""
        engine = memory_engine_for(Card, ignore_timestamps=True)
        a, b = make_cards(engine, ["A", "B"], updated_at=OLD_TIME)

        engine.swap(a, b)

        assert a.updated_at != OLD_TIME


class TestBulkReorderNotification:
    """通知测试"""

    def test_notifies_entity_name_once(self):
        notifier = RecordingNotifier()
        engine = memory_engine_for(Card, notifier=notifier)
        a, b = make_cards(engine, ["A", "B"])

        engine.bulk_reorder([b.id, a.id])

        assert notifier.calls == ["Card"]

    def test_moves_do_not_notify(self):
        notifier = RecordingNotifier()
        engine = memory_engine_for(Card, notifier=notifier)
        a, b = make_cards(engine, ["A", "B"])

        engine.move_to_start(b)
        engine.swap(a, b)

        assert notifier.calls == []

    def test_invalid_input_does_not_notify(self):
        notifier = RecordingNotifier()
        engine = memory_engine_for(Card, notifier=notifier)

        with pytest.raises(InvalidInputError):
            engine.bulk_reorder("ab")

        assert notifier.calls == []

    def test_dispatcher_receives_event(self):
        dispatcher = SortedEventDispatcher()
        events = []
        dispatcher.subscribe(events.append)
        engine = memory_engine_for(Card, notifier=dispatcher)
        a, = make_cards(engine, ["A"])

        engine.bulk_reorder([a.id])

        assert len(events) == 1
        assert events[0].is_for(Card)
