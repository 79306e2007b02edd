"""SE(3) pose representation for rigid body transformations."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from scipy.spatial.transform import Rotation


@dataclass
class SE3:
    """Rigid body transformation (rotation + translation) in SE(3).

    Represents a tracking-frame pose T_world_tracking that transforms points
    from the tracking frame to the world frame:

        p_world = R @ p_tracking + t

    The rotation is held as a unit quaternion (scipy Rotation), always in
    double precision.

    Attributes:
        rotation: Unit-quaternion rotation
        translation: 3D translation vector
    """

    rotation: Rotation
    translation: np.ndarray  # (3,) translation vector

    def __post_init__(self) -> None:
        """Validate and normalize inputs."""
        if not isinstance(self.rotation, Rotation):
            raise TypeError(
                f"Rotation must be a scipy Rotation, got {type(self.rotation).__name__}"
            )
        if not self.rotation.single:
            raise ValueError("Rotation must be a single rotation, not a stack")
        self.translation = np.asarray(self.translation, dtype=np.float64).flatten()
        if self.translation.shape != (3,):
            raise ValueError(
                f"Translation must be (3,), got {self.translation.shape}"
            )

    @classmethod
    def identity(cls) -> SE3:
        """Create identity transformation (no rotation, no translation).

        Returns:
            SE3 representing the identity transform
        """
        return cls(rotation=Rotation.identity(), translation=np.zeros(3))

    @classmethod
    def from_rotation(cls, rotation: Rotation) -> SE3:
        """Create a rotation-only transformation."""
        return cls(rotation=rotation, translation=np.zeros(3))

    @classmethod
    def from_translation(cls, translation: np.ndarray) -> SE3:
        """Create a translation-only transformation."""
        return cls(rotation=Rotation.identity(), translation=translation)

    @classmethod
    def from_matrix(cls, T: np.ndarray) -> SE3:
        """Create SE3 from 4x4 homogeneous transformation matrix.

        Args:
            T: 4x4 transformation matrix of the form:
               [[R  t]
                [0  1]]

        Returns:
            SE3 transformation
        """
        T = np.asarray(T, dtype=np.float64)
        if T.shape != (4, 4):
            raise ValueError(f"Transform must be 4x4, got {T.shape}")

        return cls(rotation=Rotation.from_matrix(T[:3, :3]), translation=T[:3, 3])

    @classmethod
    def from_quaternion(
        cls,
        qw: float,
        qx: float,
        qy: float,
        qz: float,
        translation: np.ndarray,
    ) -> SE3:
        """Create SE3 from quaternion and translation.

        Uses the Hamilton convention where quaternion is (w, x, y, z).
        This matches EuRoC ground truth format. The quaternion is normalized.

        Args:
            qw: Quaternion scalar (w) component
            qx: Quaternion x component
            qy: Quaternion y component
            qz: Quaternion z component
            translation: 3D translation vector

        Returns:
            SE3 transformation
        """
        # scipy stores quaternions scalar-last
        rotation = Rotation.from_quat([qx, qy, qz, qw])
        return cls(rotation=rotation, translation=np.asarray(translation).flatten())

    @property
    def quaternion(self) -> np.ndarray:
        """Return the rotation as a (w, x, y, z) unit quaternion."""
        qx, qy, qz, qw = self.rotation.as_quat()
        return np.array([qw, qx, qy, qz])

    def to_matrix(self) -> np.ndarray:
        """Convert to 4x4 homogeneous transformation matrix.

        Returns:
            4x4 transformation matrix [[R, t], [0, 1]]
        """
        T = np.eye(4, dtype=np.float64)
        T[:3, :3] = self.rotation.as_matrix()
        T[:3, 3] = self.translation
        return T

    def inverse(self) -> SE3:
        """Compute the inverse transformation T^{-1}.

        For T = [R, t], the inverse is [R^T, -R^T @ t].

        Returns:
            Inverse SE3 transformation
        """
        R_inv = self.rotation.inv()
        t_inv = -R_inv.apply(self.translation)
        return SE3(rotation=R_inv, translation=t_inv)

    def compose(self, other: SE3) -> SE3:
        """Compose with another transformation: self @ other.

        If self = T_A_B and other = T_B_C, the result is T_A_C.

        Example:
            T_world_prev.compose(T_prev_curr) gives T_world_curr

        Args:
            other: SE3 transformation to compose with

        Returns:
            Composed SE3 transformation (self @ other)
        """
        R = self.rotation * other.rotation
        t = self.rotation.apply(other.translation) + self.translation
        return SE3(rotation=R, translation=t)

    def transform_points(self, points: np.ndarray) -> np.ndarray:
        """Transform points from local frame to world frame.

        Args:
            points: Nx3 array of 3D points in local (tracking) frame

        Returns:
            Nx3 array of 3D points in world frame
        """
        points = np.asarray(points, dtype=np.float64)
        if points.ndim == 1:
            points = points.reshape(1, 3)

        if points.shape[1] != 3:
            raise ValueError(f"Points must be Nx3, got {points.shape}")

        return self.rotation.apply(points) + self.translation

    def is_close(self, other: SE3, atol: float = 1e-9) -> bool:
        """Return True if both transforms agree within tolerance."""
        angle = (self.rotation.inv() * other.rotation).magnitude()
        return bool(
            np.allclose(self.translation, other.translation, atol=atol)
            and angle <= atol
        )

    @property
    def position(self) -> np.ndarray:
        """Return tracking-frame origin in world coordinates."""
        return self.translation.copy()

    def __repr__(self) -> str:
        """Return string representation."""
        pos = self.translation
        qw, qx, qy, qz = self.quaternion
        return (
            f"SE3(position=[{pos[0]:.3f}, {pos[1]:.3f}, {pos[2]:.3f}], "
            f"quaternion=[{qw:.4f}, {qx:.4f}, {qy:.4f}, {qz:.4f}])"
        )

    def __matmul__(self, other: SE3) -> SE3:
        """Matrix multiplication operator for composition.

        Allows: T_result = T1 @ T2

        Args:
            other: SE3 transformation to compose with

        Returns:
            Composed SE3 transformation
        """
        return self.compose(other)
