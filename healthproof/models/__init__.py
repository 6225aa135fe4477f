from healthproof.models.user import User, UserSession
from healthproof.models.coin import CoinTransaction
from healthproof.models.claim import Claim, Market, ClaimVote
from healthproof.models.evidence import Paper, ClaimPaper
from healthproof.models.dossier import DossierJob

__all__ = [
    'User', 'UserSession',
    'CoinTransaction',
    'Claim', 'Market', 'ClaimVote',
    'Paper', 'ClaimPaper',
    'DossierJob',
]
