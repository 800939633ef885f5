"""Sequential point-set pipelines with schema compatibility checks."""

from abc import ABC, abstractmethod

from pointscape.core.point_frame import PointFrame
from pointscape.core.utils import get_logger

logger = get_logger(__name__)


class Step(ABC):
    """
    Base class for pipeline steps.

    A step is a stateless transformation of a PointFrame: filtering,
    projecting, clipping, or attaching a derived result to the metadata.
    """

    @abstractmethod
    def run(self, point_frame: PointFrame) -> PointFrame:
        """Execute the step transformation and return the modified frame."""
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class Pipeline:
    """
    Run steps in order, each consuming the previous step's output.

    A step must return a PointFrame whose schema still carries every
    feature registered before it ran; anything else aborts the run.
    """

    def __init__(self, steps: list[Step]) -> None:
        self.steps = list(steps)
        logger.info(
            "Created pipeline with %s steps: %s",
            len(self.steps),
            [step.__class__.__name__ for step in self.steps],
        )

    def run(self, point_frame: PointFrame) -> PointFrame:
        """
        Run the pipeline on a PointFrame.

        Args:
            point_frame: Input PointFrame

        Returns:
            PointFrame produced by the last step

        Raises:
            TypeError: If a step returns something other than a PointFrame
            ValueError: If a step drops registered features from the schema
        """
        current = point_frame
        total = len(self.steps)

        for i, step in enumerate(self.steps, 1):
            step_name = step.__class__.__name__
            logger.info("Step %s/%s: %s on %s points", i, total, step_name, current.count())
            try:
                result = step.run(current)
                if not isinstance(result, PointFrame):
                    raise TypeError(
                        f"Step {step_name} returned {type(result).__name__} instead of PointFrame"
                    )

                issues = current.schema.compatibility_issues(result.schema)
                if issues:
                    raise ValueError(
                        f"Step {step_name} produced incompatible schema: {'; '.join(issues)}"
                    )
            except Exception as e:
                logger.error("Step %s/%s: %s failed: %s", i, total, step_name, e)
                raise

            current = result
            logger.debug("Step %s done; crs=%s", step_name, current.metadata.crs)

        logger.info("Pipeline finished with %s points", current.count())
        return current

    def __repr__(self) -> str:
        step_names = [step.__class__.__name__ for step in self.steps]
        return f"Pipeline({' -> '.join(step_names)})"

    def __len__(self) -> int:
        return len(self.steps)
