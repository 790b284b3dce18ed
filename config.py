# ============================================================================
# HYPERPARAMETERS & CONFIGURATION
# ============================================================================
# Adjust these values to control the genetic algorithm and the rocket field

# --- Genetic Algorithm - Population & Evolution ---
POPULATION_SIZE = 10        # Number of rockets in the first generation
MIN_POPULATION_SIZE = 2     # Smallest population the selection formula can breed from
GENERATIONS = 50            # Number of generations the demo runs for
GENOME_LENGTH = 200         # Steps every rocket lives for (same for the whole population)

# --- Genetic Algorithm - Evolution Parameters ---
MUTATION_INTENSITY = 0.05   # Probability of re-rolling each gene after crossover (0.0-1.0)
SELECTION_RESOLUTION = 100  # Pool slots given to the fittest member (others scaled down)
CARRYOVER_POLICY = "carryover"  # "carryover" = last child unmutated, "elitist" = last child is best parent, "none"

# --- Rocket - Genome Ranges ---
# Half-open integer ranges [low, high) for each component of a movement vector.
INITIAL_GENE_RANGE = (-15, 15)
MUTATION_GENE_RANGE = (-30, 30)  # Mutation explores a wider range than the initial genome

# --- Playing Field ---
FIELD_SIZE = (500, 500)     # (width, height) in pixels
START_POSITION = (250, 480)
GOAL_POSITION = (250, 20)
TARGET_RADIUS = 5           # Rocket counts as hitting the goal within +/- this box

# --- Fitness ---
TARGET_BONUS = 1000.0       # Flat fitness for rockets that reached the goal
WALL_PENALTY = 1000.0       # Divides the fitness of rockets that hit a wall
MIN_DISTANCE = 1.0          # Distance floor before inverting (no division by zero)

# --- Rendering ---
ROCKET_SIZE = 4
GOAL_SIZE = 10
