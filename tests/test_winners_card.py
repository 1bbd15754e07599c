"""Tests for the winners card renderer."""

from appvote.utils.cards.winners_card import CardWinner, render_winners_card


def test_renders_png():
    png = render_winners_card(
        week_name="Week 1",
        subtitle="Voting closed",
        winners=[
            CardWinner(position=1, app_name="Rocket", owner="@alice"),
            CardWinner(position=2, app_name="A very long application name that needs clipping", owner="Bob"),
        ],
    )
    assert png.startswith(b"\x89PNG")


def test_renders_empty_podium():
    assert render_winners_card(week_name="Week 2", winners=[]).startswith(b"\x89PNG")
