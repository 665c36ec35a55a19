"""排序管理 SortableMixin 测试

测试 SortableMixin 的核心功能：
1. 新建时分配排序值（save_with_rank）
2. 基本排序操作（move_up, move_down, move_to_start, move_to_end, swap）
3. 分组排序与关联排序记录
4. 批量重排序与事件
5. __sortable__ 配置覆盖
"""

import pytest

from ysort.config import SortableSettings
from ysort.sortable import (
    InvalidInputError,
    SortableConfigError,
    SortableMixin,
    configure_sortable,
    on_model_sorted,
)
from tests.helpers.sortable_models import (
    SortBanner,
    SortProduct,
    SortSlide,
    SortTask,
)


def titles(records):
    return [record.title for record in records]


class TestSimpleSorting:
    """简单排序测试"""

    @pytest.fixture
    def banners(self, orm_session):
        items = [SortBanner(title=title).save_with_rank() for title in ["Banner 1", "Banner 2", "Banner 3"]]
        orm_session.commit()
        return items

    def test_sort_field_mixin_adds_order_column(self):
        """测试 SortFieldMixin 添加 order_column 字段"""
        assert hasattr(SortBanner, "order_column")

    def test_save_with_rank(self, banners):
        assert [banner.order_column for banner in banners] == [1, 2, 3]

    def test_save_with_rank_commit(self, orm_session):
        banner = SortBanner(title="solo").save_with_rank(commit=True)

        assert banner.id is not None
        assert banner.current_rank() == 1

    def test_move_up(self, orm_session, banners):
        """测试上移"""
        banner3 = SortBanner.query.filter_by(title="Banner 3").first()
        banner3.move_up()
        orm_session.commit()

        assert titles(SortBanner.ordered()) == ["Banner 1", "Banner 3", "Banner 2"]

    def test_move_down(self, orm_session, banners):
        """测试下移"""
        banners[0].move_down()
        orm_session.commit()

        assert titles(SortBanner.ordered()) == ["Banner 2", "Banner 1", "Banner 3"]

    def test_move_to_start(self, orm_session, banners):
        """测试置顶"""
        result = banners[2].move_to_start()
        orm_session.commit()

        assert result is banners[2]
        assert titles(SortBanner.ordered()) == ["Banner 3", "Banner 1", "Banner 2"]

    def test_move_to_end(self, orm_session, banners):
        """测试置底"""
        banners[0].move_to_end()
        orm_session.commit()

        assert titles(SortBanner.ordered()) == ["Banner 2", "Banner 3", "Banner 1"]

    def test_swap_with(self, orm_session, banners):
        """测试交换位置"""
        banners[0].swap_with(banners[2])
        orm_session.commit()

        assert titles(SortBanner.ordered()) == ["Banner 3", "Banner 2", "Banner 1"]

    def test_swap_classmethod(self, orm_session, banners):
        SortBanner.swap(banners[0], banners[1])
        SortBanner.swap(banners[0], banners[1])
        orm_session.commit()

        assert titles(SortBanner.ordered()) == ["Banner 1", "Banner 2", "Banner 3"]

    def test_swap_with_none(self, banners):
        assert banners[0].swap_with(None) is banners[0]
        assert banners[0].current_rank() == 1

    def test_is_first_is_last(self, banners):
        assert banners[0].is_first()
        assert banners[2].is_last()
        assert not banners[1].is_first()
        assert not banners[1].is_last()

    def test_rank_queries(self, banners):
        assert banners[1].is_rank(2)
        assert banners[1].highest_rank() == 3
        assert banners[1].lowest_rank() == 1

    def test_set_rank(self, orm_session, banners):
        banners[0].set_rank(10)
        orm_session.commit()

        assert banners[0].current_rank() == 10
        assert titles(SortBanner.ordered(descending=True))[0] == "Banner 1"

    def test_siblings(self, banners):
        assert banners[0].siblings() == banners


class TestGroupSorting:
    """分组排序测试"""

    @pytest.fixture
    def products(self, orm_session):
        items = [
            SortProduct(category_id=category_id, name=name).save_with_rank()
            for category_id, name in [(1, "A1"), (1, "A2"), (2, "B1"), (2, "B2"), (2, "B3")]
        ]
        orm_session.commit()
        return items

    def test_ranks_per_group(self, products):
        assert [product.order_column for product in products] == [1, 2, 1, 2, 3]

    def test_move_within_group(self, orm_session, products):
        products[4].move_to_start()
        orm_session.commit()

        group_1 = SortProduct.ordered(group_filters={"category_id": 1})
        group_2 = SortProduct.ordered(group_filters={"category_id": 2})

        assert [p.name for p in group_1] == ["A1", "A2"]
        assert [p.name for p in group_2] == ["B3", "B1", "B2"]

    def test_move_up_does_not_cross_group(self, orm_session, products):
        """分组内第一条记录上移不会与其他分组交换"""
        products[2].move_up()
        orm_session.commit()

        assert products[2].order_column == 1
        assert products[1].order_column == 2

    def test_siblings(self, products):
        assert [p.name for p in products[3].siblings()] == ["B1", "B2", "B3"]


class TestRelationshipSorting:
    """关联排序记录测试"""

    @pytest.fixture
    def tasks(self, orm_session):
        items = [SortTask(name=name).save_with_rank() for name in ["T1", "T2", "T3"]]
        orm_session.commit()
        return items

    def test_position_rows_created(self, tasks):
        assert [task.position.order_column for task in tasks] == [1, 2, 3]

    def test_move_to_end(self, orm_session, tasks):
        tasks[0].move_to_end()
        orm_session.commit()

        assert [task.name for task in SortTask.ordered()] == ["T2", "T3", "T1"]

    def test_reorder(self, orm_session, tasks):
        SortTask.reorder([tasks[2].id, tasks[0].id, tasks[1].id])
        orm_session.commit()
        orm_session.expire_all()

        assert [task.name for task in SortTask.ordered()] == ["T3", "T1", "T2"]


class TestReorder:
    """批量重排序测试"""

    @pytest.fixture
    def banners(self, orm_session):
        items = [
            SortBanner(title=title, slug=slug).save_with_rank()
            for title, slug in [("Home", "home"), ("About", "about"), ("News", "news")]
        ]
        orm_session.commit()
        return items

    def test_reorder(self, orm_session, banners):
        """前端提交新顺序 [3, 1, 2]"""
        home, about, news = banners

        count = SortBanner.reorder([news.id, home.id, about.id])
        orm_session.commit()

        assert count == 3
        assert titles(SortBanner.ordered()) == ["News", "Home", "About"]

    def test_reorder_by_column(self, orm_session, banners):
        SortBanner.reorder_by_column("slug", ["about", "news", "home"])
        orm_session.commit()

        assert titles(SortBanner.ordered()) == ["About", "News", "Home"]

    def test_reorder_rejects_generator(self, banners):
        with pytest.raises(InvalidInputError):
            SortBanner.reorder(banner.id for banner in banners)

    def test_reorder_emits_event(self, orm_session, banners):
        received = []

        @on_model_sorted
        def listener(event):
            received.append(event)

        SortBanner.reorder([banner.id for banner in banners])

        assert len(received) == 1
        assert received[0].is_for(SortBanner)
        assert not received[0].is_for(SortProduct)


class TestSortableConfig:
    """配置覆盖测试"""

    def test_model_overrides(self):
        options = SortSlide.sortable_options()

        assert options.order_column_name == "position"
        assert options.ignore_timestamps is True

    def test_group_by_override(self):
        assert SortProduct.sortable_options().sort_group_by == ("category_id",)

    def test_process_defaults_apply(self):
        configure_sortable(SortableSettings(atomic_operations=True))

        assert SortBanner.sortable_options().atomic_operations is True
        assert SortSlide.sortable_options().atomic_operations is True

    def test_config_is_read_on_every_call(self):
        assert SortBanner.sortable_options().ignore_timestamps is False

        configure_sortable(SortableSettings(ignore_timestamps=True))

        assert SortBanner.sortable_options().ignore_timestamps is True

    def test_custom_column(self, orm_session):
        slides = [SortSlide(title=title).save_with_rank() for title in "ABC"]
        orm_session.commit()

        slides[2].move_to_start()
        orm_session.commit()

        assert [slide.position for slide in slides] == [2, 3, 1]

    def test_unknown_option(self):
        class BrokenOptions(SortableMixin):
            __sortable__ = {"sort_field": "position"}

        with pytest.raises(SortableConfigError):
            BrokenOptions.sortable_options()

    def test_sort_when_creating_disabled(self, orm_session):
        configure_sortable(SortableSettings(sort_when_creating=False))

        banner = SortBanner(title="manual").save_with_rank()

        assert banner.id is not None
        assert banner.order_column is None
