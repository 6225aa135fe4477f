import logging
from datetime import datetime, timedelta, timezone
from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from healthproof.errors import ErrorCode, ServiceError, ValidationError
from healthproof.extensions import db
from healthproof.models.claim import Claim, ClaimVote, Market, VOTE_SIDES
from healthproof.services.coin_service import CoinLedger

logger = logging.getLogger(__name__)


class VoteResult:
    def __init__(self, vote, new_balance):
        self.vote = vote
        self.new_balance = new_balance

    def to_dict(self):
        v = self.vote.to_dict()
        return {
            'vote': {k: v[k] for k in ('id', 'side', 'votedAt', 'revealAt')},
            'newBalance': self.new_balance,
        }


class VoteService:
    def __init__(self, ledger=None, app_config=None):
        config = app_config or current_app.config
        self.ledger = ledger or CoinLedger(config)
        self.reveal_delay = timedelta(hours=config.get('VOTE_REVEAL_HOURS', 6))

    def place_vote(self, user_id, claim_id, side):
        """
        Cast a YES/NO vote for 1 coin.

        Returns a VoteResult, or a ServiceError for NOT_FOUND, INVALID_STATE,
        CONFLICT or INSUFFICIENT_FUNDS (checked in that order). The debit, the
        vote row and the market counters commit together or not at all.
        """
        if side not in VOTE_SIDES:
            raise ValidationError("side must be one of: YES, NO")

        claim = db.session.get(Claim, claim_id)
        if not claim:
            return ServiceError(ErrorCode.NOT_FOUND, 'Claim not found')

        if not claim.market or claim.market.status != 'ACTIVE':
            return ServiceError(ErrorCode.INVALID_STATE, 'This claim is not open for voting')

        existing = ClaimVote.query.filter_by(claim_id=claim_id, user_id=user_id).first()
        if existing:
            return ServiceError(ErrorCode.CONFLICT, 'You have already voted on this claim')

        try:
            spend = self.ledger.spend_vote(user_id, claim_id, commit=False)
            if not spend.success:
                db.session.rollback()
                return spend.error

            now = datetime.now(timezone.utc)
            vote = ClaimVote(
                claim_id=claim_id,
                user_id=user_id,
                side=side,
                voted_at=now,
                reveal_at=now + self.reveal_delay,
                revealed=False,
            )
            db.session.add(vote)
            db.session.flush()

            counter = Market.yes_votes if side == 'YES' else Market.no_votes
            bumped = db.session.execute(
                update(Market)
                .where(Market.claim_id == claim_id, Market.status == 'ACTIVE')
                .values({
                    Market.total_votes: Market.total_votes + 1,
                    counter: counter + 1,
                })
            )
            if bumped.rowcount == 0:
                # Market closed between the status check and the write
                db.session.rollback()
                return ServiceError(ErrorCode.INVALID_STATE, 'This claim is not open for voting')

            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            logger.info(f"Duplicate vote rejected: user={user_id} claim={claim_id}")
            return ServiceError(ErrorCode.CONFLICT, 'You have already voted on this claim')
        except SQLAlchemyError:
            db.session.rollback()
            raise

        logger.info(f"Vote placed: user={user_id} claim={claim_id} side={side} balance={spend.new_balance}")
        return VoteResult(vote, spend.new_balance)

    def get_user_vote(self, user_id, claim_id):
        return ClaimVote.query.filter_by(claim_id=claim_id, user_id=user_id).first()

    def reveal_due_votes(self, now=None):
        """Flip `revealed` on every vote whose reveal time has passed."""
        now = now or datetime.now(timezone.utc)
        result = db.session.execute(
            update(ClaimVote)
            .where(ClaimVote.revealed.is_(False), ClaimVote.reveal_at <= now)
            .values(revealed=True)
            .execution_options(synchronize_session=False)
        )
        db.session.commit()
        count = result.rowcount or 0
        if count:
            logger.info(f"Revealed {count} votes")
        return count

    def reconcile_market(self, market):
        """Recompute a market's counters from claim_votes. Returns True if it drifted."""
        rows = db.session.query(
            ClaimVote.side, db.func.count(ClaimVote.id),
        ).filter(ClaimVote.claim_id == market.claim_id).group_by(ClaimVote.side).all()
        counts = {side: n for side, n in rows}
        yes, no = counts.get('YES', 0), counts.get('NO', 0)

        if (market.yes_votes, market.no_votes, market.total_votes) == (yes, no, yes + no):
            return False

        logger.warning(
            "Market %s drifted: stored yes=%s no=%s total=%s, actual yes=%s no=%s",
            market.id, market.yes_votes, market.no_votes, market.total_votes, yes, no,
        )
        market.yes_votes = yes
        market.no_votes = no
        market.total_votes = yes + no
        return True

    def reconcile_all(self):
        drifted = [m.id for m in Market.query.order_by(Market.id).all() if self.reconcile_market(m)]
        db.session.commit()
        return drifted
