"""Error-state Kalman filter localization for IMU + absolute-pose fusion.

This package fuses high-rate inertial measurements with low-rate absolute
pose/velocity observations (GNSS, lidar scan matching, odometry):
- coords: Quaternion and SO(3) helpers
- sensors: Sensor sample types and strapdown mechanization
- estimators: The 15-state error-state Kalman filter
- fusion: Channel buffers, temporal synchronization and innovation gating
- filtering: Filter facade, initialization manager, observability recorder
- flow: Orchestration loop and collaborator interfaces
- sim: Synthetic sensor streams for tests and demos
- eval: Error metrics
"""

__version__ = "0.1.0"
