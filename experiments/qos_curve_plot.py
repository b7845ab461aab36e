"""QoS Curve Experiment.

Builds each registered QoS function shape through the factory, samples it
over the probability range [0, 1] and plots the resulting curves.
"""

from pathlib import Path

try:
    import matplotlib
    matplotlib.use('Agg')  # Non-interactive backend
    import matplotlib.pyplot as plt
    MATPLOTLIB_AVAILABLE = True
except ImportError:
    MATPLOTLIB_AVAILABLE = False

from prosit.qos import qos_fun_factory


def sample_qos_curves(
    configs: dict,
    num_points: int = 101,
) -> dict:
    """Sample QoS functions built from configuration.

    Args:
        configs: Dictionary mapping a label -> QoS config (with a 'type' key).
        num_points: Number of probability values sampled in [0, 1].

    Returns:
        Dictionary mapping label -> (probabilities, qos values).
    """
    probabilities = [i / (num_points - 1) for i in range(num_points)]
    results = {}

    for label, config in configs.items():
        qos_fun = qos_fun_factory.create(config["type"], config)
        results[label] = (probabilities, [qos_fun.eval(p) for p in probabilities])

    return results


def plot_qos_curves(
    results: dict,
    output_path: str = "results/qos_curves.png",
) -> None:
    """Plot sampled QoS curves.

    Args:
        results: Dictionary mapping label -> (probabilities, qos values).
        output_path: Path to save the plot.
    """
    if not MATPLOTLIB_AVAILABLE:
        raise ImportError("matplotlib is required for plotting")

    # Ensure output directory exists
    output_dir = Path(output_path).parent
    output_dir.mkdir(parents=True, exist_ok=True)

    plt.figure(figsize=(10, 6))
    for label, (probabilities, values) in sorted(results.items()):
        plt.plot(probabilities, values, linewidth=2, label=label)
    plt.xlabel('Probability of respecting the deadline', fontsize=12)
    plt.ylabel('QoS', fontsize=12)
    plt.title('QoS functions', fontsize=14)
    plt.grid(True, alpha=0.3)
    plt.xlim(0, 1.0)
    plt.legend()

    # Save plot
    plt.savefig(output_path, dpi=150, bbox_inches='tight')
    plt.close()

    print(f"Plot saved to {output_path}")


def main():
    """Plot the standard linear and quadratic QoS shapes."""
    configs = {
        "linear": {"type": "linear", "scale": 2.0, "pmin": 0.5, "pmax": 0.9, "offset": 1.0},
        "quadratic": {"type": "quadratic", "scale": 3.0, "pmin": 0.2, "pmax": 0.6},
    }

    results = sample_qos_curves(configs)

    print("\nQoS at p = 0.0, 0.5, 1.0:")
    for label, (probabilities, values) in sorted(results.items()):
        print(f"  {label}: {values[0]:.3f}, {values[len(values) // 2]:.3f}, {values[-1]:.3f}")

    plot_qos_curves(results)


if __name__ == "__main__":
    main()
