"""Interactive command shell for the health monitor."""

import cmd
import shlex

from .errors import HealthMonitorError
from .reporting.report_generator import ReportGenerator


class MonitorShell(cmd.Cmd):
    """
    Line-oriented shell over a MonitoringApp.

    Every command is a thin call into the app's sampler, history store or
    target registry. Hyphenated command names (``add-target``) are
    accepted alongside their underscore spellings.
    """

    intro = "Health Monitor - Interactive Mode\nType 'help' for available commands"
    prompt = "monitor> "

    def __init__(self, app, stdin=None, stdout=None):
        super().__init__(stdin=stdin, stdout=stdout)
        if stdin is not None:
            self.use_rawinput = False
        self.app = app

    def _print(self, text: str = "") -> None:
        self.stdout.write(text + "\n")

    def precmd(self, line: str) -> str:
        command, sep, rest = line.strip().partition(" ")
        return command.replace("-", "_") + sep + rest

    def do_help(self, arg: str) -> None:
        """help [command] - List commands or show help for one"""
        super().do_help(arg.strip().replace("-", "_"))

    def emptyline(self) -> bool:
        return False

    def default(self, line: str) -> None:
        self._print(f"Unknown command: {line}. Type 'help' for available commands.")

    # ------------------------------------------------------------------
    # Sampling
    # ------------------------------------------------------------------

    def do_start(self, arg: str) -> None:
        """start [interval_seconds] - Start continuous monitoring"""
        try:
            interval = float(arg) if arg.strip() else None
            interval = self.app.start(interval)
        except ValueError:
            self._print(f"Invalid interval: {arg}")
            return
        except HealthMonitorError as e:
            self._print(f"Cannot start: {e}")
            return
        self._print(f"Continuous monitoring started (every {interval:g}s)")

    def do_stop(self, arg: str) -> None:
        """stop - Stop continuous monitoring"""
        self.app.stop()
        self._print("Monitoring stopped")

    def do_interval(self, arg: str) -> None:
        """interval <seconds> - Change the sampling interval"""
        try:
            interval = float(arg)
            if interval <= 0:
                raise ValueError(arg)
        except ValueError:
            self._print("Usage: interval <seconds>  (positive number)")
            return
        self.app.set_interval(interval)
        self._print(f"Interval set to {interval:g}s")

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def do_status(self, arg: str) -> None:
        """status - Display the latest sample"""
        sample = self.app.latest()
        if sample is None:
            self._print("No samples collected yet. Use 'start' to begin monitoring.")
            return

        summary = sample.summary
        self._print(f"Cycle {sample.cycle} - state: {self.app.sampler.state.value}")
        self._print(
            f"{summary.status.to_emoji()} Overall Status: {summary.status.value} "
            f"({summary.success_count}/{summary.total} healthy, {summary.success_ratio:.1f}%)"
        )
        self._print(f"Average Response Time: {summary.avg_elapsed_ms:.1f} ms")
        for result in sample.results:
            mark = "✓" if result.success else "✗"
            line = f"  {mark} {result.target_name} ({result.address}) {result.elapsed_ms:.0f} ms"
            if result.error:
                line += f" - {result.error}"
            self._print(line)

        runtime = sample.runtime
        if "memory_usage_percentage" in runtime:
            self._print(
                f"Memory: {runtime['memory_usage_percentage']:.1f}%  "
                f"Threads: {runtime.get('thread_count', 'n/a')}"
            )

    def do_stats(self, arg: str) -> None:
        """stats - Display statistics over the stored history"""
        stats = self.app.store.statistics()
        if not stats.has_data:
            self._print("No data: nothing has been sampled yet.")
            return
        self._print(f"Samples: {stats.sample_count} over {stats.time_range_seconds:.0f}s")
        self._print(
            f"Health %: avg {stats.average_health_percentage:.1f}, "
            f"max {stats.max_health_percentage:.1f}, min {stats.min_health_percentage:.1f}"
        )
        rate = "n/a" if stats.success_rate is None else f"{stats.success_rate:.1f}%"
        self._print(f"Checks: {stats.successful_probes}/{stats.total_probes} successful ({rate})")

    def do_report(self, arg: str) -> None:
        """report [json|html|csv ...] - Write reports (default: configured formats)"""
        formats = [f.lower() for f in arg.split()]
        unknown = [f for f in formats if f not in ReportGenerator.FORMATS]
        if unknown:
            self._print(f"Unknown report format(s): {', '.join(unknown)}")
            return
        try:
            paths = self.app.write_reports(formats or None)
        except OSError as e:
            self._print(f"Error generating report: {e}")
            return
        for path in paths:
            self._print(f"Report generated: {path}")

    # ------------------------------------------------------------------
    # Targets
    # ------------------------------------------------------------------

    def do_add_target(self, arg: str) -> None:
        """add-target <name> <address> [expected_status] [timeout_ms] - Add a target"""
        try:
            parts = shlex.split(arg)
        except ValueError as e:
            self._print(f"Invalid input: {e}")
            return
        if len(parts) < 2:
            self._print("Invalid input. Both name and address are required.")
            return

        options = {}
        try:
            if len(parts) > 2:
                options["expected_status"] = int(parts[2])
            if len(parts) > 3:
                options["timeout_ms"] = int(parts[3])
        except ValueError:
            self._print("expected_status and timeout_ms must be integers")
            return

        try:
            target = self.app.registry.add_from(parts[0], parts[1], **options)
        except HealthMonitorError as e:
            self._print(f"Target rejected: {e}")
            return
        self._print(f"Target added: {target.name} -> {target.address} ({target.kind.value})")

    do_add = do_add_target

    def do_remove_target(self, arg: str) -> None:
        """remove-target <name> - Stop monitoring a target"""
        name = arg.strip()
        if self.app.registry.remove(name):
            self._print(f"Target removed: {name}")
        else:
            self._print(f"No such target: {name}")

    def do_list_targets(self, arg: str) -> None:
        """list-targets - List monitored targets"""
        targets = self.app.registry.snapshot()
        if not targets:
            self._print("No targets are currently being monitored.")
            self._print("Use 'add-target' to add one.")
            return
        self._print("Monitored Targets:")
        for i, target in enumerate(targets, 1):
            self._print(f"{i}. {target.name} -> {target.address} ({target.kind.value})")

    do_services = do_list_targets

    # ------------------------------------------------------------------
    # Exit
    # ------------------------------------------------------------------

    def do_exit(self, arg: str) -> bool:
        """exit - Stop monitoring and leave the shell"""
        self.app.stop()
        return True

    do_quit = do_exit

    def do_EOF(self, arg: str) -> bool:
        self._print()
        return self.do_exit(arg)
