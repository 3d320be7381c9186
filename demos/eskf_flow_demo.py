"""IMU + Absolute Pose ESKF Localization Demo.

Runs a synthetic scenario through the full localization pipeline:

- Samples are pushed into queue subscribers in 0.1 s chunks, one chunk per tick
- FilteringFlow synchronizes pose/scan/IMU channels, seeds the filter, then
  alternates raw-IMU propagation (100 Hz) and absolute-pose corrections (10 Hz)
- Fused odometry is compared against ground truth

Usage:
    python -m demos.eskf_flow_demo --scenario turn --duration 30 --noise 0.2 --plot
"""

import argparse
import logging
from pathlib import Path
from typing import Dict, Optional

import matplotlib.pyplot as plt
import numpy as np

from eskf_localization.config import FilterConfig, load_config
from eskf_localization.coords import euler_to_rotation_matrix, make_pose
from eskf_localization.eval import compute_error_stats, compute_position_errors, compute_rmse
from eskf_localization.flow import (
    FilteringFlow,
    FlowSinks,
    FlowSubscribers,
    QueueSubscriber,
    RecordingCloudSink,
    RecordingOdometrySink,
    RecordingTransformBroadcaster,
    StaticCalibrationSource,
)
from eskf_localization.sim import (
    Scenario,
    generate_constant_turn_scenario,
    generate_stationary_scenario,
    truth_position_at,
)

TICK_S = 0.1

# Lidar mounted 0.3 m ahead of and 0.2 m above the IMU, yawed by 90 degrees
DEFAULT_CALIBRATION = make_pose(
    euler_to_rotation_matrix(0.0, 0.0, np.pi / 2), np.array([0.3, 0.0, 0.2])
)


def build_scenario(name: str, duration: float, noise: float, seed: int) -> Scenario:
    if name == "stationary":
        return generate_stationary_scenario(
            duration=duration,
            position=np.array([10.0, -5.0, 1.0]),
            calibration=DEFAULT_CALIBRATION,
            pose_noise_std=noise,
            vel_noise_std=0.5 * noise,
            seed=seed,
        )
    return generate_constant_turn_scenario(
        duration=duration,
        calibration=DEFAULT_CALIBRATION,
        pose_noise_std=noise,
        vel_noise_std=0.5 * noise,
        seed=seed,
    )


def run_demo(
    scenario: Scenario,
    config: FilterConfig,
    verbose: bool = True,
) -> Dict:
    """
    Feed a scenario through FilteringFlow tick by tick.

    Returns:
        Results dictionary with the sinks, the flow statistics and the
        per-tick standard deviations.
    """
    queues = {
        name: QueueSubscriber(name)
        for name in ("imu_raw", "cloud", "pose_vel", "imu_synced")
    }
    subscribers = FlowSubscribers(
        imu_raw=queues["imu_raw"],
        cloud=queues["cloud"],
        pose_vel=queues["pose_vel"],
        imu_synced=queues["imu_synced"],
    )
    sinks = FlowSinks(
        fused_odometry=RecordingOdometrySink(),
        correction_odometry=RecordingOdometrySink(),
        transform=RecordingTransformBroadcaster(),
        scan=RecordingCloudSink(),
    )
    calibration = StaticCalibrationSource(
        {(config.imu_frame_id, config.lidar_frame_id): scenario.calibration}
    )
    flow = FilteringFlow(config, subscribers, calibration, sinks)

    if verbose:
        print("=" * 70)
        print("IMU + Absolute Pose ESKF Localization")
        print("=" * 70)
        print(f"  IMU samples:     {len(scenario.imu_raw)}")
        print(f"  Pose samples:    {len(scenario.pose_vel)}")
        print(f"  Fusion strategy: {config.fusion_strategy}")
        print(f"  Gating:          {config.gate_confidence}")

    std_t, std_pos = [], []
    for chunk in scenario.iter_chunks(TICK_S):
        for name, q in queues.items():
            for sample in chunk[name]:
                q.push(sample)
        flow.run()

        if flow.has_inited():
            std_t.append(flow.filtering.get_time())
            std_pos.append(flow.filtering.get_standard_deviation().position)

    stats = flow.statistics()
    if verbose:
        print("\nFusion complete:")
        print(f"  Predicts:              {stats.predicts}")
        print(f"  Refused predicts:      {stats.predicts_refused}")
        print(f"  Corrections:           {stats.corrections}")
        print(f"  Rejected corrections:  {stats.corrections_rejected}")
        print(f"  Synchronizer drops:    {stats.sync_drops}")

    if config.enable_observability_analysis and flow.filtering is not None:
        flow.filtering.save_observability_analysis()

    return {
        "flow": flow,
        "fused": sinks.fused_odometry,
        "corrections": sinks.correction_odometry,
        "statistics": stats,
        "std_t": np.array(std_t),
        "std_pos": np.array(std_pos).reshape(-1, 3),
    }


def evaluate_results(scenario: Scenario, results: Dict) -> Dict:
    fused = results["fused"]
    truth = truth_position_at(scenario, fused.times)
    errors = compute_position_errors(truth, fused.positions)

    metrics = compute_error_stats(errors)
    metrics["rmse_xyz"] = compute_rmse(errors, axis=0)
    metrics["final_error"] = float(np.linalg.norm(errors[-1]))
    metrics["final_speed"] = float(np.linalg.norm(fused.velocities[-1]))
    return metrics


def plot_results(scenario: Scenario, results: Dict, save_path: Optional[str] = None) -> None:
    """Trajectory, error, speed and uncertainty plots."""
    fused = results["fused"]
    corrections = results["corrections"]
    truth = truth_position_at(scenario, fused.times)
    error_norm = np.linalg.norm(fused.positions - truth, axis=1)

    fig, axes = plt.subplots(2, 2, figsize=(14, 10))

    ax = axes[0, 0]
    ax.plot(scenario.truth_positions[:, 0], scenario.truth_positions[:, 1],
            'k-', label='Truth', linewidth=2)
    ax.plot(fused.positions[:, 0], fused.positions[:, 1], 'b-', label='ESKF', alpha=0.7)
    ax.scatter(corrections.positions[:, 0], corrections.positions[:, 1],
               s=10, c='orange', alpha=0.4, label='Lidar poses', zorder=2)
    ax.set_xlabel('East [m]')
    ax.set_ylabel('North [m]')
    ax.set_title('Trajectory')
    ax.legend()
    ax.grid(True)
    ax.axis('equal')

    ax = axes[0, 1]
    ax.plot(fused.times, error_norm, 'b-')
    ax.set_xlabel('Time [s]')
    ax.set_ylabel('Position Error [m]')
    ax.set_title('IMU Position Error vs Time')
    ax.grid(True)

    ax = axes[1, 0]
    ax.plot(fused.times, np.linalg.norm(fused.velocities, axis=1), 'b-', label='ESKF')
    ax.plot(scenario.truth_times, np.linalg.norm(scenario.truth_velocities, axis=1),
            'k--', label='Truth')
    ax.set_xlabel('Time [s]')
    ax.set_ylabel('Speed [m/s]')
    ax.set_title('Speed')
    ax.legend()
    ax.grid(True)

    ax = axes[1, 1]
    for i, axis_name in enumerate('xyz'):
        ax.plot(results["std_t"], results["std_pos"][:, i], label=f'σ_{axis_name}')
    ax.set_xlabel('Time [s]')
    ax.set_ylabel('Position Std [m]')
    ax.set_title('Filter Position Uncertainty')
    ax.legend()
    ax.grid(True)

    plt.tight_layout()

    if save_path:
        Path(save_path).parent.mkdir(parents=True, exist_ok=True)
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        print(f"\nSaved figure: {save_path}")

    plt.show()


def main():
    """Main entry point for the ESKF flow demo."""
    parser = argparse.ArgumentParser(
        description="IMU + absolute pose ESKF localization demo"
    )
    parser.add_argument(
        "--scenario",
        choices=("stationary", "turn"),
        default="turn",
        help="Synthetic trajectory (default: turn)"
    )
    parser.add_argument(
        "--duration",
        type=float,
        default=30.0,
        help="Scenario length in seconds (default: 30)"
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to a JSON filter configuration"
    )
    parser.add_argument(
        "--noise",
        type=float,
        default=0.1,
        help="Absolute position noise std in meters (default: 0.1)"
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=42,
        help="Noise seed (default: 42)"
    )
    parser.add_argument(
        "--plot",
        action="store_true",
        help="Show result plots"
    )
    parser.add_argument(
        "--save",
        type=str,
        default=None,
        help="Path to save the results figure (implies --plot)"
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (default: INFO)"
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.config:
        print(f"\nLoading configuration from: {args.config}")
        config = load_config(args.config)
    else:
        config = FilterConfig.from_dict(
            {"measurement_noise": {"position": max(args.noise, 0.01)}}
        )

    scenario = build_scenario(args.scenario, args.duration, args.noise, args.seed)
    results = run_demo(scenario, config)

    print("\n" + "=" * 70)
    print("Evaluation Metrics")
    print("=" * 70)
    metrics = evaluate_results(scenario, results)
    rmse = metrics["rmse_xyz"]
    print(f"  RMSE (3D)     : {metrics['rmse']:.3f} m")
    print(f"  RMSE (X/Y/Z)  : {rmse[0]:.3f} / {rmse[1]:.3f} / {rmse[2]:.3f} m")
    print(f"  P95 Error     : {metrics['p95']:.3f} m")
    print(f"  Max Error     : {metrics['max']:.3f} m")
    print(f"  Final Error   : {metrics['final_error']:.3f} m")
    print(f"  Final Speed   : {metrics['final_speed']:.3f} m/s")
    print("")

    if args.plot or args.save:
        plot_results(scenario, results, save_path=args.save)


if __name__ == "__main__":
    main()
