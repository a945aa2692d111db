"""
World snapshot serialization.

Converts a CellWorld (grid, organisms, fossil record, controls) to and
from a JSON-compatible snapshot. Restores validate and parse the whole
snapshot before touching live state, so a rejected snapshot leaves the
world as it was.
"""

import json
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import jsonschema
from loguru import logger

from .constants import SCHEMA_DIR, SNAPSHOT_FORMAT_VERSION
from .data_types import CellState, Hyperparameters
from .loader import DataLoadError, load_schema
from .organism import Organism
from .species import Species

VALID_STATES = {state.value for state in CellState}


class SnapshotError(DataLoadError):
    """Raised when a snapshot is structurally invalid"""
    pass


class WorldSerializer:
    """
    Snapshot codec for CellWorld. Owns no world state.

    Species are resolved by stable species_id first, then by name. An
    organism whose species is missing from the fossil record gets a
    placeholder species built from its own anatomy.
    """

    def __init__(self, schema_dir: Optional[Path] = SCHEMA_DIR):
        """
        Args:
            schema_dir: Directory holding snapshot.schema.json (None = structural checks only)
        """
        self._schema = load_schema(Path(schema_dir) / "snapshot.schema.json") if schema_dir else None

    # ------------------------------------------------------------------
    # Save
    # ------------------------------------------------------------------

    def serialize(self, world) -> dict:
        """
        Capture the world.

        Dead organisms are purged first, so a snapshot never holds one.

        Returns:
            JSON-compatible snapshot dict
        """
        world.clear_dead_organisms()
        return {
            'format_version': SNAPSHOT_FORMAT_VERSION,
            'total_ticks': world.total_ticks,
            'reset_count': world.reset_count,
            'total_mutability': float(world.total_mutability),
            'largest_cell_count': world.largest_cell_count,
            'grid': world.grid_map.serialize(),
            'organisms': [organism.to_dict() for organism in world.registry],
            'fossil_record': world.fossil_record.serialize(),
            'controls': world.hyperparams.to_dict()
        }

    def save_snapshot(self, world, file_path: Path) -> dict:
        snapshot = self.serialize(world)
        file_path = Path(file_path)
        with open(file_path, 'w') as f:
            json.dump(snapshot, f)
        logger.info(f"Saved snapshot: {len(snapshot['organisms'])} organisms, "
                    f"tick {snapshot['total_ticks']} -> {file_path}")
        return snapshot

    # ------------------------------------------------------------------
    # Validate
    # ------------------------------------------------------------------

    def validate_snapshot(self, snapshot: dict):
        """
        Check structure and bounds without touching any world.

        Raises:
            SnapshotError: On the first problem found
        """
        if not isinstance(snapshot, dict):
            raise SnapshotError(f"Snapshot must be an object, got {type(snapshot).__name__}")

        if self._schema is not None:
            try:
                jsonschema.validate(instance=snapshot, schema=self._schema)
            except jsonschema.ValidationError as e:
                location = "/".join(str(p) for p in e.absolute_path)
                raise SnapshotError(f"Snapshot validation error at '{location}': {e.message}")

        try:
            grid = snapshot['grid']
            cols, rows = grid['cols'], grid['rows']
            if len(grid['cells']) != cols * rows:
                raise SnapshotError(f"Grid {cols}x{rows} needs {cols * rows} cells, got {len(grid['cells'])}")

            unknown = set(grid['cells']) - VALID_STATES
            if unknown:
                raise SnapshotError(f"Unknown cell states: {sorted(unknown)}")

            for wall in grid['walls']:
                if not (0 <= wall['c'] < cols and 0 <= wall['r'] < rows):
                    raise SnapshotError(f"Wall ({wall['c']}, {wall['r']}) outside {cols}x{rows} grid")

            for i, raw in enumerate(snapshot['organisms']):
                if not (0 <= raw['col'] < cols and 0 <= raw['row'] < rows):
                    raise SnapshotError(f"Organism {i} at ({raw['col']}, {raw['row']}) outside {cols}x{rows} grid")

            fossil_data = snapshot['fossil_record']
            for label in ('species', 'extinct_species'):
                table = fossil_data.get(label, {})
                if not isinstance(table, dict):
                    raise SnapshotError(f"fossil_record.{label} must be a name -> stats mapping")
                self._check_species_table(table, f"fossil_record.{label}")
            if not _is_int(fossil_data.get('next_species_id', 0)):
                raise SnapshotError("fossil_record.next_species_id must be an integer")
        except (KeyError, TypeError) as e:
            raise SnapshotError(f"Malformed snapshot: {e!r}")

    # ------------------------------------------------------------------
    # Restore
    # ------------------------------------------------------------------

    def load_raw(self, world, snapshot: dict, override_controls: bool = False):
        """
        Replace world state with a snapshot.

        Everything is validated and parsed before the first mutation.

        Args:
            world: CellWorld to restore into
            snapshot: Dict produced by serialize() (or a legacy/partial one)
            override_controls: Apply the snapshot's controls; otherwise keep current ones

        Raises:
            SnapshotError: If the snapshot is rejected (world untouched)
        """
        self.validate_snapshot(snapshot)

        organism_records, dead_organisms = self._parse_organisms(world, snapshot['organisms'])

        controls = snapshot.get('controls') or {}
        if override_controls:
            self._check_controls(controls)
            cap = controls.get('max_organisms', world.hyperparams.max_organisms)
        else:
            cap = world.hyperparams.max_organisms
        if 0 <= cap < len(organism_records):
            raise SnapshotError(f"Snapshot holds {len(organism_records)} organisms, population cap is {cap}")

        grid_data = snapshot['grid']
        fossil_data = snapshot['fossil_record']
        total_ticks = snapshot['total_ticks']
        registry = world.registry

        by_id, by_name, constructed = self._species_lookup(fossil_data.get('species', {}))
        extinct_ids = {stats['species_id'] for stats in fossil_data.get('extinct_species', {}).values()
                       if 'species_id' in stats}
        next_species_id = max([fossil_data.get('next_species_id', 0)] +
                              [species_id + 1 for species_id in set(by_id) | extinct_ids])

        # Live state changes from here on
        registry.clear()
        world.fossil_record.clear_record()
        world.fossil_record.next_species_id = next_species_id
        if override_controls:
            world.hyperparams.load_json_obj(controls)

        cell_size = grid_data.get('cell_size') or world.grid_map.cell_size
        world.grid_map.resize(grid_data['cols'], grid_data['rows'], cell_size)
        world.grid_map.load_raw({**grid_data, 'cell_size': cell_size})
        world.walls = [world.grid_map.cell_at(wall['c'], wall['r']) for wall in grid_data['walls']]

        # Skipped dead organisms leave food, as if they had died in place
        for organism in dead_organisms:
            for anatomy_cell in organism.anatomy.cells:
                cell = organism.real_cell(anatomy_cell)
                if cell is not None and cell.state.is_organism_part:
                    world.change_cell(cell.col, cell.row, CellState.FOOD, None)

        registry.largest_cell_count = snapshot.get('largest_cell_count', 0)

        for raw, organism in organism_records:
            world.add_organism(organism)
            species = self._resolve_species(raw, organism, by_id, by_name, extinct_ids,
                                            constructed, total_ticks)
            if species.anatomy is None:
                species.anatomy = organism.anatomy.copy()
                species.calc_anatomy_details()
            species.population += 1
            organism.species = species

        for species in constructed:
            species.cumulative_pop = max(species.cumulative_pop, species.population)
            if species.population == 0:
                species.extinct = True
                if species.end_tick is None:
                    species.end_tick = total_ticks
            world.fossil_record.add_species_obj(species)
        world.fossil_record.load_raw(fossil_data)

        world.total_ticks = total_ticks
        world.reset_count = snapshot['reset_count']
        world.render_full()

        logger.info(f"Loaded snapshot: {world.grid_map.cols}x{world.grid_map.rows}, "
                    f"{len(registry)} organisms, {len(world.fossil_record.extant_species)} species, "
                    f"tick {world.total_ticks}")

    def load_snapshot(self, world, file_path: Path, override_controls: bool = False) -> dict:
        file_path = Path(file_path)
        if not file_path.exists():
            raise SnapshotError(f"File not found: {file_path}")
        try:
            with open(file_path, 'r') as f:
                snapshot = json.load(f)
        except json.JSONDecodeError as e:
            raise SnapshotError(f"Invalid snapshot JSON in {file_path}: {e}")

        self.load_raw(world, snapshot, override_controls=override_controls)
        return snapshot

    def _parse_organisms(self, world, raw_organisms: List[dict]) -> Tuple[List[Tuple[dict, Organism]], List[Organism]]:
        """Parse living records and collect dead ones for footprint cleanup"""
        records = []
        dead = []
        for i, raw in enumerate(raw_organisms):
            try:
                organism = Organism.from_dict(raw, world)
            except (KeyError, ValueError, TypeError) as e:
                raise SnapshotError(f"Organism record {i} is malformed: {e!r}")
            if raw.get('living') is False:
                logger.debug(f"Skipping dead organism record {i}")
                dead.append(organism)
                continue
            records.append((raw, organism))
        return records, dead

    def _check_controls(self, controls: dict):
        """Controls must match the Hyperparameters field types before they are applied"""
        if not isinstance(controls, dict):
            raise SnapshotError(f"controls must be an object, got {type(controls).__name__}")

        defaults = Hyperparameters().to_dict()
        for key, value in controls.items():
            if key not in defaults:
                continue
            expected = type(defaults[key])
            if expected is bool:
                ok = isinstance(value, bool)
            elif expected is int:
                ok = isinstance(value, int) and not isinstance(value, bool)
            else:
                ok = isinstance(value, (int, float)) and not isinstance(value, bool)
            if not ok:
                raise SnapshotError(f"Control {key!r} must be {expected.__name__}, got {value!r}")

    def _check_species_table(self, table: dict, label: str):
        for name, stats in table.items():
            if not isinstance(stats, dict):
                raise SnapshotError(f"{label}[{name!r}] must be an object")
            for key in ('species_id', 'population', 'cumulative_pop', 'start_tick'):
                if key in stats and not _is_int(stats[key]):
                    raise SnapshotError(f"{label}[{name!r}].{key} must be an integer, got {stats[key]!r}")
            end_tick = stats.get('end_tick')
            if end_tick is not None and not _is_int(end_tick):
                raise SnapshotError(f"{label}[{name!r}].end_tick must be an integer or null, got {end_tick!r}")
            if not isinstance(stats.get('cell_counts', {}), dict):
                raise SnapshotError(f"{label}[{name!r}].cell_counts must be an object")

    def _species_lookup(self, species_table: Dict[str, dict]):
        """Build species stubs (no anatomy yet) keyed by id and by name"""
        by_id: Dict[int, Species] = {}
        by_name: Dict[str, Species] = {}
        constructed: List[Species] = []
        for name, stats in species_table.items():
            species = Species(None, None, stats.get('start_tick', 0))
            species.overwrite_stats(stats)
            species.name = name
            species.population = 0
            species.extinct = False
            species.end_tick = None
            by_name[name] = species
            if species.species_id >= 0:
                by_id[species.species_id] = species
            constructed.append(species)
        return by_id, by_name, constructed

    def _resolve_species(self, raw: dict, organism: Organism, by_id: dict, by_name: dict,
                         taken_ids: set, constructed: list, total_ticks: int) -> Species:
        species_id = raw.get('species_id')
        name = raw.get('species_name')

        species = by_id.get(species_id) if species_id is not None else None
        if species is None and name is not None:
            species = by_name.get(name)
        if species is not None:
            return species

        # Upstream lineage tracking occasionally drops a species link
        logger.warning(f"Species {name!r} (id={species_id}) missing from fossil record; "
                       f"synthesizing it from organism anatomy")
        species = Species(organism.anatomy.copy(), None, total_ticks)
        if name is not None:
            species.name = name
            by_name[name] = species
        # An id already held by an extinct species gets a fresh one from the fossil record
        if _is_int(species_id) and species_id >= 0 and species_id not in taken_ids:
            species.species_id = species_id
            by_id[species_id] = species
        constructed.append(species)
        return species


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)
