# /liquidator/strategies/base.py
# - Defines the AbstractStrategy interface the scheduler drives.


class AbstractStrategy:
    """
    Interface for a periodic strategy. One ``run`` is one complete pass:
    discover, decide, act. Nothing is carried from one run to the next.
    """
    async def run(self):
        """Main entrypoint for one scheduled pass."""
        raise NotImplementedError

    async def close(self):
        """Release network resources on shutdown."""
        raise NotImplementedError
