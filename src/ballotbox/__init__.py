"""ballotbox — a single-election voting workflow.

An administrator moves the election through fixed phases, registered
voters submit proposals and vote once each, and a deterministic tally
elects a winner or declares no consensus, after which voting can be
restarted among the tied leaders.
"""

__version__ = "0.1.0"
