from decimal import Decimal

import pytest

from src.domain import Category, PageRequest, QueryStatus, Ticket, TicketQueryResult
from tests.factories import make_user


class TestPageRequest:
    def test_first_page_starts_at_zero(self):
        assert PageRequest(page_size=10, page_num=1).offset == 0

    def test_offset_skips_previous_pages(self):
        assert PageRequest(page_size=25, page_num=3).offset == 50

    @pytest.mark.parametrize(('page_size', 'page_num'), [(0, 1), (1, 0), (-5, 2)])
    def test_rejects_non_positive_values(self, page_size, page_num):
        with pytest.raises(ValueError):
            PageRequest(page_size=page_size, page_num=page_num)


class TestTicketQueryResult:
    ticket = Ticket(id='t1', user_id='u1', event_id='e1', place=1, category=Category.ECONOMY)

    def test_found_behaves_as_sequence(self):
        result = TicketQueryResult.found([self.ticket])

        assert result.status is QueryStatus.FOUND
        assert len(result) == 1
        assert result[0] == self.ticket
        assert self.ticket in result

    def test_found_without_tickets_is_empty(self):
        assert TicketQueryResult.found([]).status is QueryStatus.EMPTY

    def test_failed_is_an_empty_sequence_with_reason(self):
        result = TicketQueryResult.failed('db down')

        assert not result
        assert list(result) == []
        assert result.is_failed
        assert result.reason == 'db down'

    def test_empty_is_not_failed(self):
        assert not TicketQueryResult.empty().is_failed


class TestUser:
    @pytest.mark.parametrize(
        ('account', 'expected'), [('100', True), ('60', True), ('59.99', False)]
    )
    def test_has_enough_money_for(self, account, expected):
        user = make_user(account=account)

        assert user.has_enough_money_for(Decimal('60')) is expected
