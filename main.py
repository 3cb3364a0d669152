# main.py

import pygame
import constants
import json
import logging
import logger_setup
import numpy as np
import cProfile, pstats
from layout import load_categories, menu_particles, plate_particle, default_selection
from renderer import CanvasRenderer
from simulation import create_particle_set

# Get the application's dedicated logger
logger = logging.getLogger("cluster_layout")

def build_canvases(config: dict, rng: np.random.Generator):
    """
    Creates the two independent simulations: the menu, with one particle per
    catalog record clustered by category, and the plate, seeded with the
    default selection and anchored at its centre.
    """
    sim_config = config['simulation']
    menu_config = config['canvases']['menu']
    plate_config = config['canvases']['plate']
    categories = load_categories(config['categories'])
    catalog = config['catalog']

    menu = create_particle_set(
        menu_particles(catalog, categories, constants.MENU_WIDTH, constants.CANVAS_HEIGHT, menu_config['radius'], rng),
        config=sim_config,
        rng=rng,
        name="menu",
        padding=menu_config['padding'],
        spawn_point=(constants.MENU_WIDTH / 2, constants.CANVAS_HEIGHT / 2),
    )

    plate = create_particle_set(
        config=sim_config,
        rng=rng,
        name="plate",
        padding=plate_config['padding'],
        spawn_point=(constants.PLATE_WIDTH / 2, constants.CANVAS_HEIGHT / 2),
    )
    for record in default_selection(catalog, config.get('defaults', [])):
        plate.add(plate_particle(record, constants.PLATE_WIDTH, constants.CANVAS_HEIGHT, plate_config['radius']))

    return menu, plate, categories

def handle_click(menu, plate, position, plate_radius: float):
    """
    Translates a left click into a set mutation: a menu particle is copied
    onto the plate, a plate particle is removed.
    """
    x, y = position
    if x < constants.MENU_WIDTH:
        index = menu.find_at((x, y))
        if index is not None:
            record = menu.particle_set.metadata[index]
            plate.add(plate_particle(record, constants.PLATE_WIDTH, constants.CANVAS_HEIGHT, plate_radius))
    else:
        index = plate.find_at((x - constants.MENU_WIDTH, y))
        if index is not None:
            plate.remove(index)

def run_simulation_loop(menu, plate, renderers, screen, clock, plate_radius: float, max_ticks: int = None):
    """The main frame loop. Each frame ticks both simulations once and redraws."""
    running = True
    frame = 0
    while running and (max_ticks is None or frame < max_ticks):
        # Event handling
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                running = False
            elif event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
                handle_click(menu, plate, event.pos, plate_radius)
            elif event.type == pygame.KEYDOWN and event.key == pygame.K_c:
                plate.clear()

        # --- Physics Update ---
        menu.tick()
        plate.tick()

        # --- Drawing ---
        screen.fill(constants.BACKGROUND)
        for renderer in renderers:
            renderer.draw()
        pygame.draw.line(screen, constants.DIVIDER, (constants.MENU_WIDTH, 0), (constants.MENU_WIDTH, constants.HEIGHT))
        pygame.display.flip()
        clock.tick(constants.FPS)
        frame += 1

def main():
    """
    Main function to initialize and run the cluster layout demo.
    """
    # --- Setup ---
    logger_setup.setup_logging()

    with open('config.json', 'r') as f:
        config = json.load(f)

    logger.info("Application starting...")
    logger.info(f"Loaded configuration: {config}")

    # Initialize the master random number generator (RNG)
    rng = np.random.default_rng(config['master_seed'])
    logger.info(f"Master RNG initialized with seed: {config['master_seed']}")

    # --- Initialization ---
    pygame.init()
    screen = pygame.display.set_mode((constants.WIDTH, constants.HEIGHT))
    pygame.display.set_caption(constants.TITLE)
    clock = pygame.time.Clock()

    menu, plate, categories = build_canvases(config, rng)

    menu_surface = screen.subsurface(pygame.Rect(0, 0, constants.MENU_WIDTH, constants.CANVAS_HEIGHT))
    plate_surface = screen.subsurface(pygame.Rect(constants.MENU_WIDTH, 0, constants.PLATE_WIDTH, constants.CANVAS_HEIGHT))
    menu_renderer = CanvasRenderer(menu_surface, categories, show_labels=True)
    plate_renderer = CanvasRenderer(plate_surface, categories)

    # Renderers draw the latest snapshot every frame, even after a layout goes idle.
    menu.on_tick(menu_renderer.receive)
    plate.on_tick(plate_renderer.receive)
    menu_renderer.receive(menu.snapshot())
    plate_renderer.receive(plate.snapshot())

    menu.start()
    plate.start()

    plate_radius = config['canvases']['plate']['radius']
    renderers = (menu_renderer, plate_renderer)
    profiling = config.get('profiling', {})

    if profiling.get('enabled', False):
        profiler = cProfile.Profile()
        profiler.enable()
        run_simulation_loop(menu, plate, renderers, screen, clock, plate_radius, profiling.get('max_ticks'))
        profiler.disable()
        logger.info("Profiling complete. Printing stats...")
        stats = pstats.Stats(profiler).sort_stats('cumtime')
        stats.print_stats(20) # Print the top 20 time-consuming functions
    else:
        run_simulation_loop(menu, plate, renderers, screen, clock, plate_radius)

    logger.info("Application shutting down.")
    pygame.quit()

if __name__ == "__main__":
    main()
