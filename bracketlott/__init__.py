"""Bracket-matching number lottery: ticket sales, draw and reward settlement."""
