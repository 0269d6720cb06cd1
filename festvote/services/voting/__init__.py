from festvote.services.voting.ballots import BallotCollector
from festvote.services.voting.fraud import FraudMonitor
from festvote.services.voting.results import ResultsPublisher
from festvote.services.voting.rounds import RoundController
from festvote.services.voting.scoring import ScoringEngine
from festvote.services.voting.status import VotingStatusService, invalidate_status

__all__ = [
    "BallotCollector",
    "FraudMonitor",
    "ResultsPublisher",
    "RoundController",
    "ScoringEngine",
    "VotingStatusService",
    "invalidate_status",
]
